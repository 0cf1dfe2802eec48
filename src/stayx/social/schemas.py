"""Pydantic schemas for social endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from stayx.storage.schemas import (
    Achievement,
    Activity,
    Connection,
    User,
    UserAchievement,
)


# --- Connections ---


class ConnectionRequest(BaseModel):
    receiver_id: int = Field(..., ge=1)


class ConnectionStatusUpdate(BaseModel):
    status: str


class ConnectionWithUser(Connection):
    """Connection plus the party on the other side."""

    user: User | None = None


# --- Messages ---


class SendMessageRequest(BaseModel):
    receiver_id: int = Field(..., ge=1)
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Message content cannot be empty"
            raise ValueError(msg)
        return value


# --- Activity Feed ---


class ActivityWithRefs(Activity):
    """Activity with the records its payload points at."""

    sender: User | None = None
    receiver: User | None = None
    achievement: Achievement | None = None


# --- Achievements ---


class UserAchievementWithDetails(UserAchievement):
    achievement: Achievement | None = None
