"""In-memory storage backend for development and tests.

Each entity lives in a dict keyed by id. Queries scan and filter the values.
Operations contain no suspension point between a uniqueness check, id
assignment and insert, so cooperative scheduling keeps them atomic.
"""

from __future__ import annotations

import itertools
import random
from datetime import datetime, timezone
from typing import TypeVar

import structlog

from stayx.exceptions import ConflictError, NotConnectedError, ValidationError
from stayx.levels import compute_level
from stayx.storage.base import Storage, validate_status, validate_transition
from stayx.storage.schemas import (
    ACCEPTED,
    PENDING,
    Achievement,
    AchievementCreate,
    Activity,
    ActivityCreate,
    Connection,
    ConnectionCreate,
    Message,
    MessageCreate,
    Record,
    User,
    UserAchievement,
    UserAchievementCreate,
    UserCreate,
    UserUpdate,
)

logger = structlog.get_logger()

R = TypeVar("R", bound=Record)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _copy(record: R | None) -> R | None:
    return None if record is None else record.model_copy(deep=True)


class MemoryStorage(Storage):
    """Dict-backed Storage. State is lost when the process exits."""

    def __init__(self, rng: random.Random | None = None) -> None:
        super().__init__(rng)
        self._users: dict[int, User] = {}
        self._connections: dict[int, Connection] = {}
        self._messages: dict[int, Message] = {}
        self._activities: dict[int, Activity] = {}
        self._achievements: dict[int, Achievement] = {}
        self._user_achievements: dict[int, UserAchievement] = {}

        self._user_ids = itertools.count(1)
        self._connection_ids = itertools.count(1)
        self._message_ids = itertools.count(1)
        self._activity_ids = itertools.count(1)
        self._achievement_ids = itertools.count(1)
        self._user_achievement_ids = itertools.count(1)

    # --- Users ---

    async def get_user(self, user_id: int) -> User | None:
        return _copy(self._users.get(user_id))

    async def get_user_by_external_id(self, external_id: str) -> User | None:
        return _copy(next((u for u in self._users.values() if u.external_id == external_id), None))

    async def get_user_by_username(self, username: str) -> User | None:
        return _copy(next((u for u in self._users.values() if u.username == username), None))

    async def get_user_by_email(self, email: str) -> User | None:
        return _copy(next((u for u in self._users.values() if u.email == email), None))

    def _check_user_unique(self, fields: dict, exclude_id: int | None = None) -> None:
        for name in ("username", "email", "external_id"):
            value = fields.get(name)
            if value is None:
                continue
            for user in self._users.values():
                if user.id != exclude_id and getattr(user, name) == value:
                    raise ConflictError(f"{name} already in use", field=name)

    async def create_user(self, data: UserCreate) -> User:
        fields = data.model_dump()
        self._check_user_unique(fields)
        now = _now()
        user = User(id=next(self._user_ids), created_at=now, last_active=now, **fields)
        self._users[user.id] = user
        logger.info("user_created", user_id=user.id, username=user.username)
        return _copy(user)

    async def update_user(self, user_id: int, data: UserUpdate) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        changes = data.changes()
        self._check_user_unique(changes, exclude_id=user_id)
        updated = user.model_copy(update={**changes, "last_active": _now()})
        self._users[user_id] = updated
        return _copy(updated)

    async def search_users(self, query: str, limit: int = 10) -> list[User]:
        needle = query.lower()
        matches = [
            user
            for user in sorted(self._users.values(), key=lambda u: u.id)
            if needle in user.username.lower()
            or needle in user.display_name.lower()
            or (user.bio is not None and needle in user.bio.lower())
        ]
        return [_copy(user) for user in matches[:max(limit, 0)]]

    async def count_users(self) -> int:
        return len(self._users)

    # --- Connections ---

    async def get_connection(self, connection_id: int) -> Connection | None:
        return _copy(self._connections.get(connection_id))

    def _find_pair(self, user_a_id: int, user_b_id: int) -> Connection | None:
        pair = {user_a_id, user_b_id}
        return next(
            (c for c in self._connections.values() if {c.sender_id, c.receiver_id} == pair),
            None,
        )

    async def get_connection_by_users(self, user_a_id: int, user_b_id: int) -> Connection | None:
        return _copy(self._find_pair(user_a_id, user_b_id))

    async def get_user_connections(self, user_id: int, status: str | None = None) -> list[Connection]:
        return [
            _copy(conn)
            for conn in sorted(self._connections.values(), key=lambda c: c.id)
            if user_id in (conn.sender_id, conn.receiver_id)
            and (status is None or conn.status == status)
        ]

    async def create_connection(self, data: ConnectionCreate) -> Connection:
        for field in ("sender_id", "receiver_id"):
            if getattr(data, field) not in self._users:
                raise ValidationError("Unknown user", field=field)
        if self._find_pair(data.sender_id, data.receiver_id) is not None:
            raise ConflictError("Connection already exists")
        score = data.ai_match_score
        if score is None:
            score = await self.calculate_match_score(data.sender_id, data.receiver_id)
            # calculate_match_score yields; re-check the pair afterwards.
            if self._find_pair(data.sender_id, data.receiver_id) is not None:
                raise ConflictError("Connection already exists")
        now = _now()
        conn = Connection(
            id=next(self._connection_ids),
            sender_id=data.sender_id,
            receiver_id=data.receiver_id,
            status=PENDING,
            ai_match_score=score,
            created_at=now,
            updated_at=now,
        )
        self._connections[conn.id] = conn
        logger.info("connection_created", connection_id=conn.id, sender_id=conn.sender_id, receiver_id=conn.receiver_id)
        return _copy(conn)

    async def update_connection(self, connection_id: int, status: str) -> Connection | None:
        validate_status(status)
        conn = self._connections.get(connection_id)
        if conn is None:
            return None
        validate_transition(conn.status, status)
        updated = conn.model_copy(update={"status": status, "updated_at": _now()})
        self._connections[connection_id] = updated
        return _copy(updated)

    # --- Messages ---

    async def get_message(self, message_id: int) -> Message | None:
        return _copy(self._messages.get(message_id))

    async def get_conversation(self, user_a_id: int, user_b_id: int, limit: int = 50) -> list[Message]:
        if limit <= 0:
            return []
        pair = {user_a_id, user_b_id}
        thread = sorted(
            (m for m in self._messages.values() if {m.sender_id, m.receiver_id} == pair),
            key=lambda m: (m.created_at, m.id),
        )
        return [_copy(m) for m in thread[-limit:]]

    async def get_user_messages(self, user_id: int, limit: int = 50) -> list[Message]:
        messages = sorted(
            (m for m in self._messages.values() if user_id in (m.sender_id, m.receiver_id)),
            key=lambda m: (m.created_at, m.id),
            reverse=True,
        )
        return [_copy(m) for m in messages[:max(limit, 0)]]

    async def create_message(self, data: MessageCreate) -> Message:
        conn = self._find_pair(data.sender_id, data.receiver_id)
        if conn is None or conn.status != ACCEPTED:
            raise NotConnectedError("Users are not connected")
        message = Message(id=next(self._message_ids), created_at=_now(), **data.model_dump())
        self._messages[message.id] = message
        return _copy(message)

    async def mark_message_as_read(self, message_id: int) -> Message | None:
        message = self._messages.get(message_id)
        if message is None:
            return None
        updated = message.model_copy(update={"read": True})
        self._messages[message_id] = updated
        return _copy(updated)

    # --- Activities ---

    async def get_activity(self, activity_id: int) -> Activity | None:
        return _copy(self._activities.get(activity_id))

    async def get_user_activities(self, user_id: int, limit: int = 20) -> list[Activity]:
        activities = sorted(
            (a for a in self._activities.values() if a.user_id == user_id),
            key=lambda a: (a.created_at, a.id),
            reverse=True,
        )
        return [_copy(a) for a in activities[:max(limit, 0)]]

    async def create_activity(self, data: ActivityCreate) -> Activity:
        activity = Activity(id=next(self._activity_ids), created_at=_now(), **data.model_dump())
        self._activities[activity.id] = activity
        return _copy(activity)

    # --- Achievements ---

    async def get_achievement(self, achievement_id: int) -> Achievement | None:
        return _copy(self._achievements.get(achievement_id))

    async def get_achievement_by_name(self, name: str) -> Achievement | None:
        return _copy(next((a for a in self._achievements.values() if a.name == name), None))

    async def get_all_achievements(self) -> list[Achievement]:
        return [_copy(a) for a in sorted(self._achievements.values(), key=lambda a: a.id)]

    async def create_achievement(self, data: AchievementCreate) -> Achievement:
        if any(a.name == data.name for a in self._achievements.values()):
            raise ConflictError("name already in use", field="name")
        achievement = Achievement(id=next(self._achievement_ids), **data.model_dump())
        self._achievements[achievement.id] = achievement
        return _copy(achievement)

    # --- User achievements ---

    def _find_grant(self, user_id: int, achievement_id: int) -> UserAchievement | None:
        return next(
            (
                ua
                for ua in self._user_achievements.values()
                if ua.user_id == user_id and ua.achievement_id == achievement_id
            ),
            None,
        )

    async def get_user_achievement(self, user_id: int, achievement_id: int) -> UserAchievement | None:
        return _copy(self._find_grant(user_id, achievement_id))

    async def get_user_achievements(self, user_id: int, limit: int = 100) -> list[UserAchievement]:
        grants = sorted(
            (ua for ua in self._user_achievements.values() if ua.user_id == user_id),
            key=lambda ua: ua.id,
        )
        return [_copy(ua) for ua in grants[:max(limit, 0)]]

    async def grant_user_achievement(self, data: UserAchievementCreate) -> tuple[UserAchievement, bool]:
        existing = self._find_grant(data.user_id, data.achievement_id)
        if existing is not None:
            return _copy(existing), False

        user = self._users.get(data.user_id)
        if user is None:
            raise ValidationError("Unknown user", field="user_id")
        achievement = self._achievements.get(data.achievement_id)
        if achievement is None:
            raise ValidationError("Unknown achievement", field="achievement_id")

        now = _now()
        grant = UserAchievement(
            id=next(self._user_achievement_ids),
            user_id=data.user_id,
            achievement_id=data.achievement_id,
            earned_at=now,
        )
        points = user.achievement_points + achievement.points
        self._user_achievements[grant.id] = grant
        self._users[user.id] = user.model_copy(
            update={"achievement_points": points, "level": compute_level(points), "last_active": now}
        )
        logger.info("achievement_granted", user_id=user.id, achievement=achievement.name, points=points)
        return _copy(grant), True

    # --- Recommendations ---

    async def _recommendation_candidates(self, user_id: int) -> list[User]:
        related = {
            conn.other_user_id(user_id)
            for conn in self._connections.values()
            if user_id in (conn.sender_id, conn.receiver_id)
        }
        return [
            _copy(user)
            for user in sorted(self._users.values(), key=lambda u: u.id)
            if user.id != user_id and user.id not in related
        ]
