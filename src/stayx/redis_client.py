"""Optional Redis pool. Only the rate limiter and readiness probe use it."""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def is_redis_configured() -> bool:
    return _pool is not None


def get_redis() -> redis.Redis:
    """Current pool. Raises RuntimeError when Redis is not configured."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def ping_redis() -> str:
    """Readiness check result: "ok" or the error text."""
    try:
        await get_redis().ping()
    except Exception as exc:
        return f"error: {exc}"
    return "ok"
