"""Parsers for model completions.

Models do not always follow the requested format, so every parser returns a
well-formed result: missing pieces are padded with placeholder text.
"""

from __future__ import annotations

import re

from stayx.matching import clamp_score

SUGGESTION_SEPARATOR = "###"
SUGGESTION_PLACEHOLDER = "Let me think about that..."

INSIGHT_COUNT = 3
INSIGHT_PLACEHOLDER_TITLE = "Insight Not Available"
INSIGHT_PLACEHOLDER_CONTENT = "We could not generate this insight at the moment."

DEFAULT_MATCH_SCORE = 50
DEFAULT_MATCH_REASON = "Compatibility factors could not be determined"

SUMMARY_FALLBACK = "Could not generate summary at this time."

_INSIGHT_RE = re.compile(
    r"Title\s*\d+:\s*(.*?)\n\s*Content\s*\d+:\s*(.*?)(?=\n\s*\n\s*Title\s*\d+:|\Z)",
    re.DOTALL,
)
_SCORE_RE = re.compile(r"Score:\s*(\d+)", re.IGNORECASE)
_REASON_RE = re.compile(r"^\s*\d+\.\s+(.*?)(?=^\s*\d+\.\s|\Z)", re.DOTALL | re.MULTILINE)


def parse_summary(text: str) -> str:
    summary = text.strip()
    return summary or SUMMARY_FALLBACK


def parse_suggestions(text: str, count: int = 3) -> list[str]:
    """Split on ``###`` and pad or truncate to exactly ``count`` entries."""
    suggestions = [part.strip() for part in text.split(SUGGESTION_SEPARATOR)]
    suggestions = [s for s in suggestions if s][:count]
    while len(suggestions) < count:
        suggestions.append(SUGGESTION_PLACEHOLDER)
    return suggestions


def parse_insights(text: str) -> list[dict[str, str]]:
    """Parse ``Title N:`` / ``Content N:`` pairs into exactly three insights."""
    insights = [
        {"title": title.strip(), "content": content.strip()}
        for title, content in _INSIGHT_RE.findall(text)
    ][:INSIGHT_COUNT]
    while len(insights) < INSIGHT_COUNT:
        insights.append({"title": INSIGHT_PLACEHOLDER_TITLE, "content": INSIGHT_PLACEHOLDER_CONTENT})
    return insights


def parse_match_analysis(text: str) -> tuple[int, list[str]]:
    """Extract ``Score: N`` (clamped to 0..100) and the numbered reasons.

    Reasons are only read from after the ``Reasons:`` marker.
    """
    score_match = _SCORE_RE.search(text)
    score = clamp_score(int(score_match.group(1))) if score_match else DEFAULT_MATCH_SCORE

    _, marker, section = text.partition("Reasons:")
    reasons: list[str] = []
    if marker:
        reasons = [r.strip() for r in _REASON_RE.findall(section.strip()) if r.strip()]
    return score, reasons or [DEFAULT_MATCH_REASON]
