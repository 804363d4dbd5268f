"""Redis connection pool and its FastAPI dependency.

Redis backs rate limiting, the tag-versioned cache and realtime fan-out.
None of those are required to serve a request, so callers that can degrade
use ``get_redis_dep`` instead of ``get_redis``.
"""

from collections.abc import AsyncGenerator

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    """Create the shared client. Connections are opened lazily."""
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


def get_redis() -> redis.Redis:
    """The shared client; raises RuntimeError before ``init_redis``."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


async def get_redis_dep() -> AsyncGenerator[redis.Redis | None, None]:
    """FastAPI dependency: the shared client, or None when Redis is not set up."""
    yield _pool
