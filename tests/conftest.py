"""Shared test fixtures."""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from stayx.config import Settings
from stayx.database import create_engine, create_session_factory, create_tables
from stayx.main import create_app
from stayx.social.seed import seed_achievements
from stayx.storage import DatabaseStorage, MemoryStorage, Storage
from stayx.storage.schemas import User, UserCreate

UserFactory = Callable[..., Awaitable[User]]


@pytest_asyncio.fixture(params=["memory", "database"])
async def storage(request, tmp_path) -> AsyncGenerator[Storage, None]:
    """Every storage backend, each with a fixed-seed rng.

    The database backend runs on a throwaway SQLite file so it exercises the
    same SQL paths as PostgreSQL minus row locking.
    """
    rng = random.Random(1234)
    if request.param == "memory":
        backend: Storage = MemoryStorage(rng=rng)
    else:
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'stayx.db'}")
        await create_tables(engine)
        backend = DatabaseStorage(create_session_factory(engine), rng=rng, engine=engine)
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def seeded_storage(storage: Storage) -> Storage:
    """Storage with the achievement catalog in place."""
    await seed_achievements(storage)
    return storage


@pytest_asyncio.fixture
async def make_user(storage: Storage) -> UserFactory:
    """Create a user directly in storage; names default from the username."""

    async def _make(username: str, interests: list[str] | None = None, **fields) -> User:
        data = {
            "email": f"{username}@example.com",
            "display_name": username.title(),
            "external_id": f"ext-{username}",
            "interests": interests or [],
            **fields,
        }
        return await storage.create_user(UserCreate(username=username, **data))

    return _make


def _test_settings(**overrides) -> Settings:
    values = {
        "storage_backend": "memory",
        "redis_url": "",
        "gemini_api_key": "",
        "log_format": "console",
        "environment": "test",
    }
    values.update(overrides)
    return Settings(**values)


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI, None]:
    """Application with its full startup/shutdown lifecycle on the memory backend."""
    application = create_app(_test_settings())
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _register(client: AsyncClient, username: str, interests: list[str] | None = None) -> dict:
    response = await client.post(
        "/api/v1/users",
        json={
            "email": f"{username}@example.com",
            "username": username,
            "display_name": username.title(),
            "interests": interests or [],
        },
        headers={"X-Firebase-Id": f"fb-{username}"},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def alice(client: AsyncClient) -> dict:
    """Registered user with an identity header to send as."""
    user = await _register(client, "alice", ["Bitcoin", "AI"])
    return {"user": user, "headers": {"X-Firebase-Id": "fb-alice"}}


@pytest_asyncio.fixture
async def bob(client: AsyncClient) -> dict:
    user = await _register(client, "bob", ["AI", "Music"])
    return {"user": user, "headers": {"X-Firebase-Id": "fb-bob"}}


@pytest_asyncio.fixture
async def carol(client: AsyncClient) -> dict:
    user = await _register(client, "carol", ["Gardening"])
    return {"user": user, "headers": {"X-Firebase-Id": "fb-carol"}}


@pytest_asyncio.fixture
async def connected(client: AsyncClient, alice: dict, bob: dict) -> int:
    """Alice and bob with an accepted connection. Returns the connection id."""
    response = await client.post(
        "/api/v1/connections", json={"receiver_id": bob["user"]["id"]}, headers=alice["headers"]
    )
    assert response.status_code == 201, response.text
    connection_id = response.json()["id"]
    response = await client.patch(
        f"/api/v1/connections/{connection_id}", json={"status": "accepted"}, headers=bob["headers"]
    )
    assert response.status_code == 200, response.text
    return connection_id
