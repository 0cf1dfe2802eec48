"""Social business logic: registration, connections, messaging, achievements.

Every function takes the Storage instance explicitly. Side effects that the
client surfaces as notifications are recorded as activities here, never in
the storage layer.
"""

from __future__ import annotations

import structlog

from stayx.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from stayx.social.schemas import (
    ActivityWithRefs,
    ConnectionWithUser,
    UserAchievementWithDetails,
)
from stayx.social.seed import CRYPTO_ENTHUSIAST, EARLY_ADOPTER, NETWORK_STARTER
from stayx.storage.base import Storage
from stayx.storage.schemas import (
    ACCEPTED,
    ACHIEVEMENT_EARNED,
    CONNECTION_ACCEPTED,
    CONNECTION_REQUEST,
    MESSAGE_RECEIVED,
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

logger = structlog.get_logger()

CRYPTO_TERMS = frozenset({
    "bitcoin",
    "btc",
    "ethereum",
    "eth",
    "crypto",
    "cryptocurrency",
    "defi",
    "nft",
    "nfts",
    "blockchain",
    "web3",
    "dao",
    "solana",
    "altcoins",
})


def has_crypto_interest(interests: list[str]) -> bool:
    """True if any interest mentions a crypto term as a whole word."""
    for interest in interests:
        words = interest.lower().replace("-", " ").replace("/", " ").split()
        if any(word in CRYPTO_TERMS for word in words):
            return True
    return False


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


async def grant_achievement(storage: Storage, user_id: int, achievement_name: str) -> UserAchievement | None:
    """Grant a catalog achievement and record the activity.

    Returns None if the achievement is unknown or was already earned. The
    activity is recorded only by the call that actually created the grant.
    """
    achievement = await storage.get_achievement_by_name(achievement_name)
    if achievement is None:
        logger.warning("achievement_not_found", name=achievement_name)
        return None

    grant, created = await storage.grant_user_achievement(
        UserAchievementCreate(user_id=user_id, achievement_id=achievement.id)
    )
    if not created:
        return None
    await storage.create_activity(
        ActivityCreate(
            user_id=user_id,
            type=ACHIEVEMENT_EARNED,
            data={"achievement_id": achievement.id},
        )
    )
    return grant


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def register_user(storage: Storage, data: UserCreate) -> User:
    """Create a profile and award Early Adopter.

    Raises:
        ConflictError: If the username, email or external id is taken.
    """
    if await storage.get_user_by_username(data.username) is not None:
        raise ConflictError("Username already taken", field="username")
    if await storage.get_user_by_email(data.email) is not None:
        raise ConflictError("Email already registered", field="email")

    user = await storage.create_user(data)
    await grant_achievement(storage, user.id, EARLY_ADOPTER)
    if has_crypto_interest(user.interests):
        await grant_achievement(storage, user.id, CRYPTO_ENTHUSIAST)
    return await storage.get_user(user.id) or user


async def update_profile(storage: Storage, acting_user: User, user_id: int, data: UserUpdate) -> User:
    """Update the acting user's own profile.

    Raises:
        AuthorizationError: If ``user_id`` is someone else.
        NotFoundError: If the user disappeared.
        ConflictError: If a new username/email is taken.
    """
    if acting_user.id != user_id:
        raise AuthorizationError("You can only edit your own profile")

    user = await storage.update_user(user_id, data)
    if user is None:
        raise NotFoundError("User not found")

    if data.interests is not None and has_crypto_interest(user.interests):
        if await grant_achievement(storage, user.id, CRYPTO_ENTHUSIAST) is not None:
            user = await storage.get_user(user.id) or user
    return user


async def search_users(storage: Storage, query: str, limit: int = 10) -> list[User]:
    """Search profiles; queries shorter than two characters are rejected."""
    query = query.strip()
    if len(query) < 2:
        raise ValidationError("Search query too short", field="q")
    return await storage.search_users(query, limit)


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------


async def request_connection(storage: Storage, sender: User, receiver_id: int) -> Connection:
    """Send a connection request and notify the receiver.

    Raises:
        ValidationError: On a self-connection.
        NotFoundError: If the receiver does not exist.
        ConflictError: If the two users are already related.
    """
    if sender.id == receiver_id:
        raise ValidationError("Cannot connect to yourself", field="receiver_id")
    if await storage.get_user(receiver_id) is None:
        raise NotFoundError("User not found")

    connection = await storage.create_connection(
        ConnectionCreate(sender_id=sender.id, receiver_id=receiver_id)
    )
    await storage.create_activity(
        ActivityCreate(
            user_id=receiver_id,
            type=CONNECTION_REQUEST,
            data={"connection_id": connection.id, "sender_id": sender.id},
        )
    )

    if len(await storage.get_user_connections(sender.id)) == 1:
        await grant_achievement(storage, sender.id, NETWORK_STARTER)

    logger.info(
        "connection_requested",
        connection_id=connection.id,
        sender_id=sender.id,
        receiver_id=receiver_id,
        match_score=connection.ai_match_score,
    )
    return connection


async def respond_to_connection(storage: Storage, user: User, connection_id: int, status: str) -> Connection:
    """Accept or reject a pending request. Only the receiver may respond.

    Raises:
        NotFoundError: Unknown connection.
        AuthorizationError: The user is not the receiver.
        ValidationError: Status is not accepted/rejected.
        InvalidTransitionError: The connection is no longer pending.
    """
    connection = await storage.get_connection(connection_id)
    if connection is None:
        raise NotFoundError("Connection not found")
    if connection.receiver_id != user.id:
        raise AuthorizationError("Only the receiver can respond to a connection request")

    updated = await storage.update_connection(connection_id, status)
    if updated is None:
        raise NotFoundError("Connection not found")

    if updated.status == ACCEPTED:
        await storage.create_activity(
            ActivityCreate(
                user_id=connection.sender_id,
                type=CONNECTION_ACCEPTED,
                data={"connection_id": connection_id, "receiver_id": user.id},
            )
        )
    return updated


async def list_connections(storage: Storage, user: User, status: str | None = None) -> list[ConnectionWithUser]:
    """User's connections, each with the other party attached."""
    connections = await storage.get_user_connections(user.id, status)
    enriched: list[ConnectionWithUser] = []
    for conn in connections:
        other = await storage.get_user(conn.other_user_id(user.id))
        enriched.append(ConnectionWithUser(**conn.model_dump(), user=other))
    return enriched


async def recommend_connections(storage: Storage, user: User, limit: int = 10) -> list[Recommendation]:
    return await storage.get_recommended_connections(user.id, limit)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


async def send_message(storage: Storage, sender: User, receiver_id: int, content: str) -> Message:
    """Send a direct message to an accepted connection.

    Raises:
        NotConnectedError: Without an accepted connection.
    """
    message = await storage.create_message(
        MessageCreate(sender_id=sender.id, receiver_id=receiver_id, content=content)
    )
    await storage.create_activity(
        ActivityCreate(
            user_id=receiver_id,
            type=MESSAGE_RECEIVED,
            data={"message_id": message.id, "sender_id": sender.id},
        )
    )
    return message


async def read_conversation(storage: Storage, user: User, other_user_id: int, limit: int = 50) -> list[Message]:
    """Fetch the conversation and mark the partner's unread messages as read.

    The returned list reflects the state before marking, so the client can
    highlight what was new.
    """
    messages = await storage.get_conversation(user.id, other_user_id, limit)
    for message in messages:
        if message.sender_id == other_user_id and not message.read:
            await storage.mark_message_as_read(message.id)
    return messages


# ---------------------------------------------------------------------------
# Activities & achievements
# ---------------------------------------------------------------------------


async def list_activities(storage: Storage, user: User, limit: int = 20) -> list[ActivityWithRefs]:
    """Activity feed with sender/receiver/achievement records resolved."""
    activities = await storage.get_user_activities(user.id, limit)
    enriched: list[ActivityWithRefs] = []
    for activity in activities:
        refs: dict = {}
        data = activity.data or {}
        if activity.type in (CONNECTION_REQUEST, MESSAGE_RECEIVED) and data.get("sender_id"):
            refs["sender"] = await storage.get_user(int(data["sender_id"]))
        elif activity.type == CONNECTION_ACCEPTED and data.get("receiver_id"):
            refs["receiver"] = await storage.get_user(int(data["receiver_id"]))
        elif activity.type == ACHIEVEMENT_EARNED and data.get("achievement_id"):
            refs["achievement"] = await storage.get_achievement(int(data["achievement_id"]))
        enriched.append(ActivityWithRefs(**activity.model_dump(), **refs))
    return enriched


async def list_user_achievements(storage: Storage, user: User) -> list[UserAchievementWithDetails]:
    grants = await storage.get_user_achievements(user.id)
    return [
        UserAchievementWithDetails(**grant.model_dump(), achievement=await storage.get_achievement(grant.achievement_id))
        for grant in grants
    ]
