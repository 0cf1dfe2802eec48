"""Social API endpoints: connections, messages, activity feed, achievements.

Domain errors raised by the service layer propagate to the error handlers,
which map them to 400/403/404/409 responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from stayx.auth.dependencies import get_current_user
from stayx.config import Settings
from stayx.dependencies import get_app_settings, get_storage
from stayx.social.schemas import (
    ActivityWithRefs,
    ConnectionRequest,
    ConnectionStatusUpdate,
    ConnectionWithUser,
    SendMessageRequest,
    UserAchievementWithDetails,
)
from stayx.social.service import (
    list_activities,
    list_connections,
    list_user_achievements,
    read_conversation,
    recommend_connections,
    request_connection,
    respond_to_connection,
    send_message,
)
from stayx.storage.base import Storage
from stayx.storage.schemas import Achievement, Connection, Message, Recommendation, User

router = APIRouter(prefix="/api/v1", tags=["Social"])

_STATUS_PATTERN = "^(pending|accepted|rejected)$"


# ── Connections ──


@router.get("/connections", response_model=list[ConnectionWithUser])
async def list_connections_endpoint(
    status: str | None = Query(None, pattern=_STATUS_PATTERN),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Own connections, optionally filtered by status, with the other user attached."""
    return await list_connections(storage, user, status)


@router.post("/connections", response_model=Connection, status_code=201)
async def create_connection_endpoint(
    body: ConnectionRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Send a connection request."""
    return await request_connection(storage, user, body.receiver_id)


@router.patch("/connections/{connection_id}", response_model=Connection)
async def update_connection_endpoint(
    connection_id: int,
    body: ConnectionStatusUpdate,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Accept or reject a pending request (receiver only)."""
    return await respond_to_connection(storage, user, connection_id, body.status)


@router.get("/recommendations", response_model=list[Recommendation])
async def recommendations_endpoint(
    limit: int | None = Query(None, ge=1, le=50),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    """Unconnected users ranked by match score."""
    return await recommend_connections(storage, user, limit or settings.recommendation_limit)


# ── Messages ──


@router.get("/messages/{other_user_id}", response_model=list[Message])
async def conversation_endpoint(
    other_user_id: int,
    limit: int | None = Query(None, ge=1, le=200),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    """Conversation with another user, oldest first. Marks their messages read."""
    return await read_conversation(
        storage, user, other_user_id, limit or settings.conversation_limit
    )


@router.post("/messages", response_model=Message, status_code=201)
async def send_message_endpoint(
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Send a direct message to an accepted connection."""
    return await send_message(storage, user, body.receiver_id, body.content)


# ── Activity & Achievements ──


@router.get("/activities", response_model=list[ActivityWithRefs])
async def activities_endpoint(
    limit: int | None = Query(None, ge=1, le=100),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    return await list_activities(storage, user, limit or settings.activity_limit)


@router.get("/achievements", response_model=list[Achievement])
async def achievements_endpoint(
    storage: Storage = Depends(get_storage),
):
    """Full achievement catalog (public)."""
    return await storage.get_all_achievements()


@router.get("/user-achievements", response_model=list[UserAchievementWithDetails])
async def user_achievements_endpoint(
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await list_user_achievements(storage, user)
