"""Text generation backends.

The service only depends on :class:`TextGenerator`; the Gemini implementation
is wired in at startup when an API key is configured.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog
from google import genai
from google.genai import types

from stayx.exceptions import UpstreamServiceError

logger = structlog.get_logger()

# Same thresholds for every category the model reports on.
SAFETY_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)


class TextGenerator(ABC):
    """Turns a prompt into completion text."""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the completion. Raise UpstreamServiceError on failure."""


class GeminiTextGenerator(TextGenerator):
    """Google Gemini via the ``google-genai`` async client."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", max_output_tokens: int = 1024) -> None:
        self._client = genai.Client(api_key=api_key)
        self._model = model
        self._config = types.GenerateContentConfig(
            max_output_tokens=max_output_tokens,
            safety_settings=[
                types.SafetySetting(
                    category=category,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                )
                for category in SAFETY_CATEGORIES
            ],
        )

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=self._config,
            )
        except Exception as exc:
            logger.warning("gemini_request_failed", model=self._model, error=str(exc))
            raise UpstreamServiceError("Text generation request failed") from exc

        if not response.text:
            raise UpstreamServiceError("Text generation returned an empty response")
        return response.text
