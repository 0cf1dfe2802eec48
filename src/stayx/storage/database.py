"""Relational storage backend on async SQLAlchemy.

Each operation runs in its own session and transaction. Filtering, ordering
and limiting happen in SQL; uniqueness is enforced by table constraints, with
explicit pre-checks so conflicts carry the offending field.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, func, or_, select, union
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from stayx.db import models
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
    User,
    UserAchievement,
    UserAchievementCreate,
    UserCreate,
    UserUpdate,
)

logger = structlog.get_logger()

_UNIQUE_USER_FIELDS = ("username", "email", "external_id")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _conflict_field(exc: IntegrityError, candidates: tuple[str, ...]) -> str | None:
    """Best-effort guess of the violated column from the driver message."""
    message = str(exc.orig)
    return next((name for name in candidates if name in message), None)


def _pair_clause(user_a_id: int, user_b_id: int):  # noqa: ANN202
    return and_(
        models.Connection.user_low_id == min(user_a_id, user_b_id),
        models.Connection.user_high_id == max(user_a_id, user_b_id),
    )


class DatabaseStorage(Storage):
    """Storage backed by a relational database through an async session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        rng: random.Random | None = None,
        engine: AsyncEngine | None = None,
    ) -> None:
        super().__init__(rng)
        self._session_factory = session_factory
        self._engine = engine

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    # --- Users ---

    async def _get_user_where(self, *criteria) -> User | None:  # noqa: ANN002
        async with self._session_factory() as session:
            result = await session.execute(select(models.User).where(*criteria))
            row = result.scalar_one_or_none()
            return None if row is None else User.model_validate(row)

    async def get_user(self, user_id: int) -> User | None:
        return await self._get_user_where(models.User.id == user_id)

    async def get_user_by_external_id(self, external_id: str) -> User | None:
        return await self._get_user_where(models.User.external_id == external_id)

    async def get_user_by_username(self, username: str) -> User | None:
        return await self._get_user_where(models.User.username == username)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._get_user_where(models.User.email == email)

    async def _check_user_unique(self, session: AsyncSession, fields: dict, exclude_id: int | None = None) -> None:
        for name in _UNIQUE_USER_FIELDS:
            value = fields.get(name)
            if value is None:
                continue
            column = getattr(models.User, name)
            stmt = select(models.User.id).where(column == value)
            if exclude_id is not None:
                stmt = stmt.where(models.User.id != exclude_id)
            result = await session.execute(stmt.limit(1))
            if result.scalar_one_or_none() is not None:
                raise ConflictError(f"{name} already in use", field=name)

    async def create_user(self, data: UserCreate) -> User:
        fields = data.model_dump()
        now = _now()
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    await self._check_user_unique(session, fields)
                    row = models.User(created_at=now, last_active=now, **fields)
                    session.add(row)
                    await session.flush()
            except IntegrityError as e:
                field = _conflict_field(e, _UNIQUE_USER_FIELDS)
                raise ConflictError(f"{field or 'user'} already in use", field=field) from e
            user = User.model_validate(row)
        logger.info("user_created", user_id=user.id, username=user.username)
        return user

    async def update_user(self, user_id: int, data: UserUpdate) -> User | None:
        changes = data.changes()
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    row = await session.get(models.User, user_id)
                    if row is None:
                        return None
                    await self._check_user_unique(session, changes, exclude_id=user_id)
                    for name, value in changes.items():
                        setattr(row, name, value)
                    row.last_active = _now()
                    await session.flush()
            except IntegrityError as e:
                field = _conflict_field(e, _UNIQUE_USER_FIELDS)
                raise ConflictError(f"{field or 'user'} already in use", field=field) from e
            return User.model_validate(row)

    async def search_users(self, query: str, limit: int = 10) -> list[User]:
        if limit <= 0:
            return []
        needle = query.lower()
        stmt = (
            select(models.User)
            .where(
                or_(
                    func.lower(models.User.username).contains(needle, autoescape=True),
                    func.lower(models.User.display_name).contains(needle, autoescape=True),
                    func.lower(models.User.bio).contains(needle, autoescape=True),
                )
            )
            .order_by(models.User.id)
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [User.model_validate(row) for row in result.scalars().all()]

    async def count_users(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(models.User))
            return result.scalar_one()

    # --- Connections ---

    async def get_connection(self, connection_id: int) -> Connection | None:
        async with self._session_factory() as session:
            row = await session.get(models.Connection, connection_id)
            return None if row is None else Connection.model_validate(row)

    async def get_connection_by_users(self, user_a_id: int, user_b_id: int) -> Connection | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(models.Connection).where(_pair_clause(user_a_id, user_b_id))
            )
            row = result.scalar_one_or_none()
            return None if row is None else Connection.model_validate(row)

    async def get_user_connections(self, user_id: int, status: str | None = None) -> list[Connection]:
        stmt = select(models.Connection).where(
            or_(models.Connection.sender_id == user_id, models.Connection.receiver_id == user_id)
        )
        if status is not None:
            stmt = stmt.where(models.Connection.status == status)
        async with self._session_factory() as session:
            result = await session.execute(stmt.order_by(models.Connection.id))
            return [Connection.model_validate(row) for row in result.scalars().all()]

    async def create_connection(self, data: ConnectionCreate) -> Connection:
        for field in ("sender_id", "receiver_id"):
            if await self.get_user(getattr(data, field)) is None:
                raise ValidationError("Unknown user", field=field)
        if await self.get_connection_by_users(data.sender_id, data.receiver_id) is not None:
            raise ConflictError("Connection already exists")
        score = data.ai_match_score
        if score is None:
            score = await self.calculate_match_score(data.sender_id, data.receiver_id)

        now = _now()
        row = models.Connection(
            sender_id=data.sender_id,
            receiver_id=data.receiver_id,
            user_low_id=min(data.sender_id, data.receiver_id),
            user_high_id=max(data.sender_id, data.receiver_id),
            status=PENDING,
            ai_match_score=score,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    session.add(row)
                    await session.flush()
            except IntegrityError as e:
                raise ConflictError("Connection already exists") from e
            conn = Connection.model_validate(row)
        logger.info("connection_created", connection_id=conn.id, sender_id=conn.sender_id, receiver_id=conn.receiver_id)
        return conn

    async def update_connection(self, connection_id: int, status: str) -> Connection | None:
        validate_status(status)
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(models.Connection)
                    .where(models.Connection.id == connection_id)
                    .with_for_update()
                )
                row = result.scalar_one_or_none()
                if row is None:
                    return None
                validate_transition(row.status, status)
                row.status = status
                row.updated_at = _now()
            return Connection.model_validate(row)

    # --- Messages ---

    async def get_message(self, message_id: int) -> Message | None:
        async with self._session_factory() as session:
            row = await session.get(models.Message, message_id)
            return None if row is None else Message.model_validate(row)

    async def get_conversation(self, user_a_id: int, user_b_id: int, limit: int = 50) -> list[Message]:
        if limit <= 0:
            return []
        stmt = (
            select(models.Message)
            .where(
                or_(
                    and_(models.Message.sender_id == user_a_id, models.Message.receiver_id == user_b_id),
                    and_(models.Message.sender_id == user_b_id, models.Message.receiver_id == user_a_id),
                )
            )
            .order_by(models.Message.created_at.desc(), models.Message.id.desc())
            .limit(limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            latest = [Message.model_validate(row) for row in result.scalars().all()]
        latest.reverse()
        return latest

    async def get_user_messages(self, user_id: int, limit: int = 50) -> list[Message]:
        stmt = (
            select(models.Message)
            .where(or_(models.Message.sender_id == user_id, models.Message.receiver_id == user_id))
            .order_by(models.Message.created_at.desc(), models.Message.id.desc())
            .limit(max(limit, 0))
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [Message.model_validate(row) for row in result.scalars().all()]

    async def create_message(self, data: MessageCreate) -> Message:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(models.Connection.status).where(_pair_clause(data.sender_id, data.receiver_id))
                )
                if result.scalar_one_or_none() != ACCEPTED:
                    raise NotConnectedError("Users are not connected")
                row = models.Message(created_at=_now(), **data.model_dump())
                session.add(row)
                await session.flush()
            return Message.model_validate(row)

    async def mark_message_as_read(self, message_id: int) -> Message | None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(models.Message, message_id)
                if row is None:
                    return None
                row.read = True
            return Message.model_validate(row)

    # --- Activities ---

    async def get_activity(self, activity_id: int) -> Activity | None:
        async with self._session_factory() as session:
            row = await session.get(models.Activity, activity_id)
            return None if row is None else Activity.model_validate(row)

    async def get_user_activities(self, user_id: int, limit: int = 20) -> list[Activity]:
        stmt = (
            select(models.Activity)
            .where(models.Activity.user_id == user_id)
            .order_by(models.Activity.created_at.desc(), models.Activity.id.desc())
            .limit(max(limit, 0))
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [Activity.model_validate(row) for row in result.scalars().all()]

    async def create_activity(self, data: ActivityCreate) -> Activity:
        async with self._session_factory() as session:
            async with session.begin():
                row = models.Activity(created_at=_now(), **data.model_dump())
                session.add(row)
                await session.flush()
            return Activity.model_validate(row)

    # --- Achievements ---

    async def get_achievement(self, achievement_id: int) -> Achievement | None:
        async with self._session_factory() as session:
            row = await session.get(models.Achievement, achievement_id)
            return None if row is None else Achievement.model_validate(row)

    async def get_achievement_by_name(self, name: str) -> Achievement | None:
        async with self._session_factory() as session:
            result = await session.execute(select(models.Achievement).where(models.Achievement.name == name))
            row = result.scalar_one_or_none()
            return None if row is None else Achievement.model_validate(row)

    async def get_all_achievements(self) -> list[Achievement]:
        async with self._session_factory() as session:
            result = await session.execute(select(models.Achievement).order_by(models.Achievement.id))
            return [Achievement.model_validate(row) for row in result.scalars().all()]

    async def create_achievement(self, data: AchievementCreate) -> Achievement:
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    existing = await session.execute(
                        select(models.Achievement.id).where(models.Achievement.name == data.name)
                    )
                    if existing.scalar_one_or_none() is not None:
                        raise ConflictError("name already in use", field="name")
                    row = models.Achievement(**data.model_dump())
                    session.add(row)
                    await session.flush()
            except IntegrityError as e:
                raise ConflictError("name already in use", field="name") from e
            return Achievement.model_validate(row)

    # --- User achievements ---

    async def get_user_achievement(self, user_id: int, achievement_id: int) -> UserAchievement | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(models.UserAchievement).where(
                    models.UserAchievement.user_id == user_id,
                    models.UserAchievement.achievement_id == achievement_id,
                )
            )
            row = result.scalar_one_or_none()
            return None if row is None else UserAchievement.model_validate(row)

    async def get_user_achievements(self, user_id: int, limit: int = 100) -> list[UserAchievement]:
        stmt = (
            select(models.UserAchievement)
            .where(models.UserAchievement.user_id == user_id)
            .order_by(models.UserAchievement.id)
            .limit(max(limit, 0))
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [UserAchievement.model_validate(row) for row in result.scalars().all()]

    async def grant_user_achievement(self, data: UserAchievementCreate) -> tuple[UserAchievement, bool]:
        """Grant and credit points in a single transaction.

        The user row is locked first, so concurrent grants for the same user
        serialize and the second one sees the first one's row.
        """
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    user = (
                        await session.execute(
                            select(models.User).where(models.User.id == data.user_id).with_for_update()
                        )
                    ).scalar_one_or_none()
                    if user is None:
                        raise ValidationError("Unknown user", field="user_id")

                    existing = (
                        await session.execute(
                            select(models.UserAchievement).where(
                                models.UserAchievement.user_id == data.user_id,
                                models.UserAchievement.achievement_id == data.achievement_id,
                            )
                        )
                    ).scalar_one_or_none()
                    if existing is not None:
                        return UserAchievement.model_validate(existing), False

                    achievement = await session.get(models.Achievement, data.achievement_id)
                    if achievement is None:
                        raise ValidationError("Unknown achievement", field="achievement_id")

                    now = _now()
                    grant = models.UserAchievement(
                        user_id=data.user_id,
                        achievement_id=data.achievement_id,
                        earned_at=now,
                    )
                    session.add(grant)
                    user.achievement_points += achievement.points
                    user.level = compute_level(user.achievement_points)
                    user.last_active = now
                    await session.flush()
                    points = user.achievement_points
            except IntegrityError:
                # Unique (user_id, achievement_id) hit; nothing from this transaction was kept.
                existing_grant = await self.get_user_achievement(data.user_id, data.achievement_id)
                if existing_grant is None:
                    raise
                return existing_grant, False
            record = UserAchievement.model_validate(grant)
        logger.info("achievement_granted", user_id=data.user_id, achievement=achievement.name, points=points)
        return record, True

    # --- Recommendations ---

    async def _recommendation_candidates(self, user_id: int) -> list[User]:
        related = union(
            select(models.Connection.receiver_id.label("user_id")).where(models.Connection.sender_id == user_id),
            select(models.Connection.sender_id.label("user_id")).where(models.Connection.receiver_id == user_id),
        ).subquery()
        stmt = (
            select(models.User)
            .where(models.User.id != user_id, models.User.id.not_in(select(related.c.user_id)))
            .order_by(models.User.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [User.model_validate(row) for row in result.scalars().all()]
