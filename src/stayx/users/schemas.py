"""Request/response schemas for user endpoints.

Request bodies list only the fields a user may set. Level, achievement points
and (after sign-up) the external identity are owned by the server, so unknown
keys are rejected rather than silently passed on to storage.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from stayx.storage.schemas import USERNAME_PATTERN, User, UserCreate, UserUpdate


class RegisterRequest(BaseModel):
    """Profile fields supplied at sign-up. The identity header overrides external_id."""

    model_config = ConfigDict(extra="forbid")

    external_id: str | None = Field(None, min_length=1, max_length=128)
    email: str = Field(..., max_length=320)
    username: str = Field(..., min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    display_name: str = Field(..., min_length=1, max_length=64)
    photo_url: str | None = None
    bio: str | None = Field(None, max_length=160)
    interests: list[str] = []

    def to_create(self, external_id: str | None = None) -> UserCreate:
        data = self.model_dump()
        if external_id:
            data["external_id"] = external_id
        return UserCreate(**data)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update."""

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(None, max_length=320)
    username: str | None = Field(None, min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    display_name: str | None = Field(None, min_length=1, max_length=64)
    photo_url: str | None = None
    bio: str | None = Field(None, max_length=160)
    interests: list[str] | None = None

    def to_update(self) -> UserUpdate:
        return UserUpdate(**self.model_dump(exclude_unset=True))


class LevelProgress(BaseModel):
    level: int
    points_into_level: int
    points_for_level: int
    points_to_next_level: int
    next_level: int


class OwnProfileResponse(User):
    """Own profile plus progress toward the next level."""

    progress: LevelProgress
