"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from stayx.ai.client import GeminiTextGenerator
from stayx.ai.router import router as ai_router
from stayx.ai.service import AIService
from stayx.config import Settings, get_settings
from stayx.health.router import router as health_router
from stayx.middleware import setup_middleware
from stayx.redis_client import close_redis, init_redis
from stayx.social.router import router as social_router
from stayx.social.seed import seed_achievements
from stayx.storage import create_storage
from stayx.users.router import router as users_router

logger = structlog.get_logger()


def build_ai_service(settings: Settings) -> AIService:
    """Gemini-backed service when a key is configured, fallback-only otherwise."""
    if not settings.gemini_api_key:
        logger.info("ai_disabled", reason="no api key configured")
        return AIService()
    return AIService(
        GeminiTextGenerator(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            max_output_tokens=settings.gemini_max_output_tokens,
        )
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings

    storage = await create_storage(settings)
    await seed_achievements(storage)
    app.state.storage = storage
    app.state.ai_service = build_ai_service(settings)

    if settings.redis_url:
        await init_redis(settings.redis_url)

    logger.info("startup_complete", storage_backend=settings.storage_backend, environment=settings.environment)

    yield

    await close_redis()
    await storage.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="StayX API",
        description="Backend API for StayX, a social network for the crypto and tech community",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(social_router)
    app.include_router(ai_router)

    return app


app = create_app()
