"""Shared FastAPI dependencies.

Long-lived collaborators are built once in the app lifespan and stored on
``app.state``; handlers reach them only through these functions.
"""

from __future__ import annotations

from fastapi import Request

from stayx.ai.service import AIService
from stayx.config import Settings
from stayx.storage.base import Storage


def get_storage(request: Request) -> Storage:
    """Storage backend selected at startup."""
    return request.app.state.storage


def get_ai_service(request: Request) -> AIService:
    """Generative-text service with fallbacks."""
    return request.app.state.ai_service


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings
