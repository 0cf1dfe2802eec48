"""FastAPI authentication dependencies.

The identity provider authenticates the client; requests carry its opaque
per-user id in the ``X-Firebase-Id`` header, which maps 1:1 to a User row.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Security
from fastapi.security import APIKeyHeader

from stayx.dependencies import get_storage
from stayx.storage.base import Storage
from stayx.storage.schemas import User

EXTERNAL_ID_HEADER = "X-Firebase-Id"

_external_id_header = APIKeyHeader(name=EXTERNAL_ID_HEADER, auto_error=False)


async def get_optional_external_id(
    external_id: str | None = Security(_external_id_header),
) -> str | None:
    """Return the caller's external identity if the header is present."""
    return external_id or None


async def get_external_id(
    external_id: str | None = Security(_external_id_header),
) -> str:
    """Return the caller's external identity. Raises 401 if absent."""
    if not external_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return external_id


async def get_current_user(
    external_id: str = Depends(get_external_id),
    storage: Storage = Depends(get_storage),
) -> User:
    """
    Resolve the external identity to a registered user.

    Raises 401 without an identity and 404 when no profile exists yet.
    """
    user = await storage.get_user_by_external_id(external_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
