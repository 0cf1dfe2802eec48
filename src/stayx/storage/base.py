"""Storage capability contract shared by every backend.

Singular lookups return ``None`` for absent records and never raise.
Creates return the materialized record with its generated id and timestamps.
Listing operations return finite, ordered lists.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod

from stayx.exceptions import InvalidTransitionError, ValidationError
from stayx.matching import match_score, rank_candidates
from stayx.storage.schemas import (
    ACCEPTED,
    PENDING,
    REJECTED,
    Achievement,
    AchievementCreate,
    Activity,
    ActivityCreate,
    Connection,
    ConnectionCreate,
    Message,
    MessageCreate,
    Recommendation,
    User,
    UserAchievement,
    UserAchievementCreate,
    UserCreate,
    UserUpdate,
)

VALID_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [ACCEPTED, REJECTED],
    ACCEPTED: [],
    REJECTED: [],
}


def validate_status(status: str) -> None:
    """Only terminal statuses may be requested through an update."""
    if status not in (ACCEPTED, REJECTED):
        raise ValidationError(f"Invalid status: {status!r}", field="status")


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a connection status change. Raises InvalidTransitionError."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidTransitionError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}",
            field="status",
        )


class Storage(ABC):
    """Persistence operations available to the service and route layers."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    # --- Users ---

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    async def get_user_by_external_id(self, external_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def create_user(self, data: UserCreate) -> User:
        """Insert a user. Raises ConflictError on duplicate username, email or external id."""

    @abstractmethod
    async def update_user(self, user_id: int, data: UserUpdate) -> User | None:
        """Merge the supplied fields and refresh last_active."""

    @abstractmethod
    async def search_users(self, query: str, limit: int = 10) -> list[User]:
        """Case-insensitive substring match on username, display name and bio."""

    @abstractmethod
    async def count_users(self) -> int: ...

    # --- Connections ---

    @abstractmethod
    async def get_connection(self, connection_id: int) -> Connection | None: ...

    @abstractmethod
    async def get_connection_by_users(self, user_a_id: int, user_b_id: int) -> Connection | None:
        """Connection for the unordered pair, whichever side sent it."""

    @abstractmethod
    async def get_user_connections(self, user_id: int, status: str | None = None) -> list[Connection]: ...

    @abstractmethod
    async def create_connection(self, data: ConnectionCreate) -> Connection:
        """Create a pending connection.

        Raises:
            ValidationError: If either user does not exist.
            ConflictError: If the pair is already related.
        """

    @abstractmethod
    async def update_connection(self, connection_id: int, status: str) -> Connection | None:
        """Move a pending connection to accepted/rejected."""

    # --- Messages ---

    @abstractmethod
    async def get_message(self, message_id: int) -> Message | None: ...

    @abstractmethod
    async def get_conversation(self, user_a_id: int, user_b_id: int, limit: int = 50) -> list[Message]:
        """Most recent ``limit`` messages between the two users, oldest first."""

    @abstractmethod
    async def get_user_messages(self, user_id: int, limit: int = 50) -> list[Message]: ...

    @abstractmethod
    async def create_message(self, data: MessageCreate) -> Message:
        """Store a message. Raises NotConnectedError without an accepted connection."""

    @abstractmethod
    async def mark_message_as_read(self, message_id: int) -> Message | None: ...

    # --- Activities ---

    @abstractmethod
    async def get_activity(self, activity_id: int) -> Activity | None: ...

    @abstractmethod
    async def get_user_activities(self, user_id: int, limit: int = 20) -> list[Activity]: ...

    @abstractmethod
    async def create_activity(self, data: ActivityCreate) -> Activity: ...

    # --- Achievements ---

    @abstractmethod
    async def get_achievement(self, achievement_id: int) -> Achievement | None: ...

    @abstractmethod
    async def get_achievement_by_name(self, name: str) -> Achievement | None: ...

    @abstractmethod
    async def get_all_achievements(self) -> list[Achievement]: ...

    @abstractmethod
    async def create_achievement(self, data: AchievementCreate) -> Achievement: ...

    # --- User achievements ---

    @abstractmethod
    async def get_user_achievement(self, user_id: int, achievement_id: int) -> UserAchievement | None: ...

    @abstractmethod
    async def get_user_achievements(self, user_id: int, limit: int = 100) -> list[UserAchievement]: ...

    @abstractmethod
    async def grant_user_achievement(self, data: UserAchievementCreate) -> tuple[UserAchievement, bool]:
        """Grant an achievement once and credit its points to the user.

        Returns the grant and whether this call created it. A repeated grant
        returns the existing record with False and credits nothing.
        """

    async def create_user_achievement(self, data: UserAchievementCreate) -> UserAchievement:
        grant, _ = await self.grant_user_achievement(data)
        return grant

    # --- Recommendations ---

    @abstractmethod
    async def _recommendation_candidates(self, user_id: int) -> list[User]:
        """Users other than ``user_id`` with no connection (any status) to it."""

    async def calculate_match_score(self, user_a_id: int, user_b_id: int) -> int:
        """Match score in [0, 100]; 0 when either user does not exist."""
        user_a = await self.get_user(user_a_id)
        user_b = await self.get_user(user_b_id)
        if user_a is None or user_b is None:
            return 0
        return match_score(user_a.interests, user_b.interests, self.rng)

    async def get_recommended_connections(self, user_id: int, limit: int = 10) -> list[Recommendation]:
        """Unconnected users ranked by match score, ties by ascending id."""
        user = await self.get_user(user_id)
        if user is None:
            return []
        candidates = await self._recommendation_candidates(user_id)
        scored = [
            (candidate.id, candidate, match_score(user.interests, candidate.interests, self.rng))
            for candidate in candidates
        ]
        return [
            Recommendation(user=candidate, match_score=score)
            for candidate, score in rank_candidates(scored, limit)
        ]

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
