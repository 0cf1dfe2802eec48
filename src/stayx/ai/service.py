"""Generative-text features with graceful degradation.

Every public method returns a usable value: generator failures are logged
and replaced by fixed fallback text, so callers never see upstream errors.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from stayx.ai import parsing, prompts
from stayx.ai.client import TextGenerator
from stayx.exceptions import UpstreamServiceError

logger = structlog.get_logger()

SUGGESTIONS_FALLBACK = "Could not generate suggestions at this time."
INSIGHTS_FALLBACK = {"title": "Insights Unavailable", "content": "Could not generate insights at this time."}
MATCH_FALLBACK_REASON = "Could not analyze compatibility at this time."


class AIService:
    """Prompt, generate, parse. ``generator=None`` means AI is not configured."""

    def __init__(self, generator: TextGenerator | None = None) -> None:
        self._generator = generator

    @property
    def enabled(self) -> bool:
        return self._generator is not None

    async def _generate(self, operation: str, prompt: str) -> str:
        if self._generator is None:
            raise UpstreamServiceError("Text generation is not configured")
        logger.debug("ai_generate", operation=operation, prompt_chars=len(prompt))
        return await self._generator.generate(prompt)

    async def summarize_thread(self, messages: Sequence[Mapping[str, Any]], max_length: int = 150) -> str:
        try:
            text = await self._generate("summarize", prompts.summarize_prompt(messages, max_length))
        except Exception as exc:
            logger.warning("ai_summarize_failed", error=str(exc))
            return parsing.SUMMARY_FALLBACK
        return parsing.parse_summary(text)

    async def suggest_responses(
        self,
        messages: Sequence[Mapping[str, Any]],
        context: str = "",
        options: int = 3,
    ) -> list[str]:
        try:
            text = await self._generate("suggestions", prompts.suggestions_prompt(messages, context, options))
        except Exception as exc:
            logger.warning("ai_suggestions_failed", error=str(exc))
            return [SUGGESTIONS_FALLBACK] * options
        return parsing.parse_suggestions(text, options)

    async def generate_insights(self, user_data: Mapping[str, Any], timeframe: str = "week") -> list[dict[str, str]]:
        try:
            text = await self._generate("insights", prompts.insights_prompt(user_data, timeframe))
        except Exception as exc:
            logger.warning("ai_insights_failed", error=str(exc))
            return [dict(INSIGHTS_FALLBACK) for _ in range(parsing.INSIGHT_COUNT)]
        return parsing.parse_insights(text)

    async def analyze_connection_match(
        self,
        user_profile: Mapping[str, Any],
        candidate_profile: Mapping[str, Any],
    ) -> tuple[int, list[str]]:
        try:
            text = await self._generate(
                "match_analysis", prompts.match_analysis_prompt(user_profile, candidate_profile)
            )
        except Exception as exc:
            logger.warning("ai_match_analysis_failed", error=str(exc))
            return parsing.DEFAULT_MATCH_SCORE, [MATCH_FALLBACK_REASON]
        return parsing.parse_match_analysis(text)
