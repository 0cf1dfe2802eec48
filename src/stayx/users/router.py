"""User endpoints under /api/v1/users."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from stayx.auth.dependencies import get_current_user, get_optional_external_id
from stayx.config import Settings
from stayx.dependencies import get_app_settings, get_storage
from stayx.levels import level_progress
from stayx.social.service import register_user, search_users, update_profile
from stayx.storage.base import Storage
from stayx.storage.schemas import User
from stayx.users.schemas import (
    LevelProgress,
    OwnProfileResponse,
    ProfileUpdateRequest,
    RegisterRequest,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=OwnProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> OwnProfileResponse:
    """Get own full profile."""
    return OwnProfileResponse(
        **user.model_dump(),
        progress=LevelProgress(**level_progress(user.achievement_points)),
    )


@router.post("", response_model=User, status_code=201)
async def register(
    body: RegisterRequest,
    external_id: str | None = Depends(get_optional_external_id),
    storage: Storage = Depends(get_storage),
) -> User:
    """Create a profile for a newly authenticated identity."""
    data = body.to_create(external_id)
    if data.external_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = await register_user(storage, data)
    logger.info("user_registered", user_id=user.id)
    return user


@router.get("/search", response_model=list[User])
async def search(
    q: str = Query(""),
    limit: int | None = Query(None, ge=1, le=50),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> list[User]:
    """Search users by username, display name or bio."""
    return await search_users(storage, q, limit or settings.search_limit)


@router.get("/{user_id}", response_model=User)
async def get_user(
    user_id: int,
    storage: Storage = Depends(get_storage),
) -> User:
    """Get a profile by id."""
    user = await storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=User)
async def update_user(
    user_id: int,
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
) -> User:
    """Update own profile (display_name, bio, photo_url, interests, ...)."""
    return await update_profile(storage, user, user_id, body.to_update())
