"""Prompt builders for the generative-text features."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

# Profile keys never sent to the model.
_HIDDEN_PROFILE_KEYS = frozenset({"password", "photo_url", "email", "external_id"})


def format_conversation(messages: Iterable[Mapping[str, Any]]) -> str:
    lines = []
    for msg in messages:
        speaker = "User" if msg.get("role") == "user" else "Assistant"
        lines.append(f"{speaker}: {msg.get('content', '')}")
    return "\n".join(lines)


def format_fields(data: Mapping[str, Any]) -> str:
    """One ``key: value`` line per field; lists are comma-joined."""
    lines = []
    for key, value in data.items():
        if key.startswith("_") or key in _HIDDEN_PROFILE_KEYS:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(v) for v in value)
        lines.append(f"{key}: {value}")
    return "\n".join(lines)


def summarize_prompt(messages: Iterable[Mapping[str, Any]], max_length: int = 150) -> str:
    return (
        "Summarize the following conversation in a concise way.\n"
        "Focus on the main topics and important points discussed.\n"
        f"Keep the summary under {max_length} characters.\n\n"
        f"Conversation:\n{format_conversation(messages)}\n\n"
        "Summary:"
    )


def suggestions_prompt(messages: Iterable[Mapping[str, Any]], context: str = "", options: int = 3) -> str:
    parts = [
        f"Based on the following conversation{' and context' if context else ''}, "
        f"suggest {options} different possible responses.",
        "Make the responses engaging, helpful, and conversational. "
        "Each response should be different in tone and approach.",
        "Keep responses concise (1-2 sentences each).",
        "",
    ]
    if context:
        parts.append(f"Context: {context}")
        parts.append("")
    parts.append(f"Conversation:\n{format_conversation(messages)}")
    parts.append("")
    parts.append(f'{options} suggested responses (separate each with "###"):')
    return "\n".join(parts)


def insights_prompt(user_data: Mapping[str, Any], timeframe: str = "week") -> str:
    return (
        "Based on the following user data, generate 3 insightful observations or "
        "recommendations for the user.\n"
        "Each insight should have a short title and a brief explanation or "
        "recommendation (1-2 sentences).\n"
        "The insights should be relevant to a crypto/tech social platform user "
        f"for the past {timeframe}.\n\n"
        f"User data:\n{format_fields(user_data)}\n\n"
        "Generate 3 insights with titles and content in this format:\n"
        "Title 1: [short title]\nContent 1: [brief explanation]\n\n"
        "Title 2: [short title]\nContent 2: [brief explanation]\n\n"
        "Title 3: [short title]\nContent 3: [brief explanation]"
    )


def match_analysis_prompt(user_profile: Mapping[str, Any], candidate_profile: Mapping[str, Any]) -> str:
    return (
        "Analyze these two user profiles from a crypto/tech social platform and "
        "determine their compatibility.\n"
        "Calculate a match percentage score (0-100) and provide 2-3 specific "
        "reasons for this score.\n\n"
        f"User Profile:\n{format_fields(user_profile)}\n\n"
        f"Potential Connection Profile:\n{format_fields(candidate_profile)}\n\n"
        "Respond in this format:\n"
        "Score: [0-100]\n\n"
        "Reasons:\n"
        "1. [First reason]\n"
        "2. [Second reason]\n"
        "3. [Optional third reason]"
    )
