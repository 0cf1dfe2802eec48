"""ORM models for the StayX schema.

Mirrors alembic/versions/001_initial_schema.py.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from stayx.db.base import Base
from stayx.db.types import Identifier, JSONType, UTCDateTime


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Profile row; external_id correlates 1:1 with the identity provider."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    external_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(String(160), nullable=True)
    interests: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    achievement_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_active: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("level >= 1", name="ck_users_level_positive"),
        CheckConstraint("achievement_points >= 0", name="ck_users_points_non_negative"),
    )


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


class Connection(Base):
    """Directed connection request.

    user_low_id/user_high_id hold the unordered pair so the unique constraint
    covers both directions.
    """

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    user_low_id: Mapped[int] = mapped_column(Identifier, nullable=False)
    user_high_id: Mapped[int] = mapped_column(Identifier, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    ai_match_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_connections_pair"),
        CheckConstraint("sender_id <> receiver_id", name="ck_connections_distinct_users"),
        CheckConstraint("ai_match_score BETWEEN 0 AND 100", name="ck_connections_score_range"),
        Index("idx_connections_sender", "sender_id"),
        Index("idx_connections_receiver", "receiver_id"),
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(Base):
    """Direct message between two connected users."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        Index("idx_messages_receiver", "receiver_id"),
    )


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


class Activity(Base):
    """Append-only notification addressed to user_id."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_activities_user_created", "user_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Static achievement catalog entry."""

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_achievements_points_positive"),
    )


class UserAchievement(Base):
    """Earned achievement. (user_id, achievement_id) is granted once."""

    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(Identifier, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Identifier, ForeignKey("users.id"), nullable=False)
    achievement_id: Mapped[int] = mapped_column(Identifier, ForeignKey("achievements.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievements_user_achievement"),
    )
