"""Storage backends and the factory that picks one at startup."""

from __future__ import annotations

import random

from stayx.config import Settings
from stayx.database import create_engine, create_session_factory, create_tables
from stayx.storage.base import Storage
from stayx.storage.database import DatabaseStorage
from stayx.storage.memory import MemoryStorage

BACKENDS = ("memory", "database")


async def create_storage(settings: Settings, rng: random.Random | None = None) -> Storage:
    """Build the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        return MemoryStorage(rng=rng)
    if backend == "database":
        engine = create_engine(settings.database_url, echo=settings.database_echo)
        if settings.create_tables:
            await create_tables(engine)
        return DatabaseStorage(create_session_factory(engine), rng=rng, engine=engine)
    msg = f"Unknown storage backend {settings.storage_backend!r}; expected one of {BACKENDS}"
    raise ValueError(msg)


__all__ = ["DatabaseStorage", "MemoryStorage", "Storage", "create_storage"]
