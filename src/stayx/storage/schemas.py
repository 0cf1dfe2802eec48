"""Entity records and the validated input shapes accepted by storage.

Records are what every storage backend returns. They are built from ORM rows
or from in-memory copies, so callers never hold a live session object.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Connection statuses
PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"
CONNECTION_STATUSES = (PENDING, ACCEPTED, REJECTED)

# Activity types
CONNECTION_REQUEST = "connection_request"
CONNECTION_ACCEPTED = "connection_accepted"
ACHIEVEMENT_EARNED = "achievement_earned"
MESSAGE_RECEIVED = "message_received"
ACTIVITY_TYPES = (CONNECTION_REQUEST, CONNECTION_ACCEPTED, ACHIEVEMENT_EARNED, MESSAGE_RECEIVED)


def normalize_interests(values: list[str]) -> list[str]:
    """Strip entries, drop blanks and repeats, keep first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in values:
        item = raw.strip()
        key = item.lower()
        if not item or key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        msg = "Invalid email address"
        raise ValueError(msg)
    return value


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Record(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class User(Record):
    id: int
    external_id: str | None = None
    email: str
    username: str
    display_name: str
    photo_url: str | None = None
    bio: str | None = None
    interests: list[str] = []
    level: int = 1
    achievement_points: int = 0
    created_at: datetime
    last_active: datetime


class Connection(Record):
    id: int
    sender_id: int
    receiver_id: int
    status: str
    ai_match_score: int
    created_at: datetime
    updated_at: datetime

    def other_user_id(self, user_id: int) -> int:
        """Id of the party that is not ``user_id``."""
        return self.receiver_id if self.sender_id == user_id else self.sender_id


class Message(Record):
    id: int
    sender_id: int
    receiver_id: int
    content: str
    read: bool = False
    created_at: datetime


class Activity(Record):
    id: int
    user_id: int
    type: str
    data: dict[str, Any] = {}
    created_at: datetime


class Achievement(Record):
    id: int
    name: str
    description: str
    icon: str
    points: int
    category: str


class UserAchievement(Record):
    id: int
    user_id: int
    achievement_id: int
    earned_at: datetime


class Recommendation(BaseModel):
    user: User
    match_score: int


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    external_id: str | None = Field(None, min_length=1, max_length=128)
    email: str = Field(..., max_length=320)
    username: str = Field(..., min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    display_name: str = Field(..., min_length=1, max_length=64)
    photo_url: str | None = None
    bio: str | None = Field(None, max_length=160)
    interests: list[str] = []
    level: int = Field(1, ge=1)
    achievement_points: int = Field(0, ge=0)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _check_email(value)

    @field_validator("interests")
    @classmethod
    def _normalize_interests(cls, value: list[str]) -> list[str]:
        return normalize_interests(value)


class UserUpdate(BaseModel):
    """Partial profile update. Only fields explicitly set are applied."""

    external_id: str | None = Field(None, min_length=1, max_length=128)
    email: str | None = Field(None, max_length=320)
    username: str | None = Field(None, min_length=3, max_length=32, pattern=USERNAME_PATTERN)
    display_name: str | None = Field(None, min_length=1, max_length=64)
    photo_url: str | None = None
    bio: str | None = Field(None, max_length=160)
    interests: list[str] | None = None
    level: int | None = Field(None, ge=1)
    achievement_points: int | None = Field(None, ge=0)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str | None) -> str | None:
        return None if value is None else _check_email(value)

    @field_validator("interests")
    @classmethod
    def _normalize_interests(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else normalize_interests(value)

    @model_validator(mode="after")
    def _required_fields_not_null(self) -> UserUpdate:
        for name in ("email", "username", "display_name", "interests", "level", "achievement_points"):
            if name in self.model_fields_set and getattr(self, name) is None:
                msg = f"{name} cannot be null"
                raise ValueError(msg)
        return self

    def changes(self) -> dict[str, Any]:
        """Fields explicitly supplied by the caller."""
        return self.model_dump(exclude_unset=True)


class ConnectionCreate(BaseModel):
    sender_id: int = Field(..., ge=1)
    receiver_id: int = Field(..., ge=1)
    ai_match_score: int | None = Field(None, ge=0, le=100)

    @model_validator(mode="after")
    def _distinct_users(self) -> ConnectionCreate:
        if self.sender_id == self.receiver_id:
            msg = "Cannot connect a user to themselves"
            raise ValueError(msg)
        return self


class MessageCreate(BaseModel):
    sender_id: int = Field(..., ge=1)
    receiver_id: int = Field(..., ge=1)
    content: str = Field(..., max_length=5000)
    read: bool = False

    @field_validator("content")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            msg = "Message content cannot be empty"
            raise ValueError(msg)
        return value


class ActivityCreate(BaseModel):
    user_id: int = Field(..., ge=1)
    type: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = {}


class AchievementCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str
    icon: str = Field(..., min_length=1, max_length=64)
    points: int = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=32)


class UserAchievementCreate(BaseModel):
    user_id: int = Field(..., ge=1)
    achievement_id: int = Field(..., ge=1)
