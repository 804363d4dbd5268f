"""Tag-versioned Redis cache.

Each tag owns a version counter at ``cache:tag:{tag}``. Cached values are
stored under a key that embeds the current version of every tag they depend
on, so bumping a tag orphans all entries built from it; the orphans expire
through their TTL. Path revalidation is broadcast on ``pubsub:revalidate``
for the front end to pick up.

A missing Redis client (not initialized, or tests) degrades every helper to
a no-op / pass-through.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog

logger = structlog.get_logger()

TAG_KEY = "cache:tag:{tag}"
REVALIDATE_CHANNEL = "pubsub:revalidate"

# Tags touched by every content validation transition
ADMIN = "admin"
QUESTS = "quests"
EXPEDITIONS = "expeditions"
ORGANIZATIONS = "organizations"
CONTENT_TAGS = (ADMIN, QUESTS, EXPEDITIONS, ORGANIZATIONS)
SUBMISSIONS = "submissions"


async def _tag_versions(redis: Any, tags: Iterable[str]) -> list[str]:  # noqa: ANN401
    keys = [TAG_KEY.format(tag=t) for t in tags]
    values = await redis.mget(keys)
    return [str(v) if v is not None else "0" for v in values]


async def cached(
    redis: Any,  # noqa: ANN401
    key: str,
    tags: Iterable[str],
    ttl: int,
    loader: Callable[[], Awaitable[Any]],
) -> Any:  # noqa: ANN401
    """Return the cached value for ``key`` or build it with ``loader``.

    ``loader`` must return something JSON-serializable.
    """
    if redis is None:
        return await loader()

    tags = list(tags)
    try:
        versions = await _tag_versions(redis, tags)
        full_key = ":".join(["cache", key, *versions])
        hit = await redis.get(full_key)
    except Exception:
        logger.warning("cache_read_failed", key=key, exc_info=True)
        return await loader()

    if hit:
        return json.loads(hit)

    value = await loader()
    try:
        await redis.setex(full_key, ttl, json.dumps(value, default=str))
    except Exception:
        logger.warning("cache_write_failed", key=key, exc_info=True)
    return value


async def revalidate_tags(redis: Any, tags: Iterable[str]) -> None:  # noqa: ANN401
    """Bump the version of each tag, invalidating every entry built from it."""
    if redis is None:
        return
    tags = list(tags)
    for tag in tags:
        await redis.incr(TAG_KEY.format(tag=tag))
    logger.debug("cache_tags_revalidated", tags=tags)


async def revalidate_paths(redis: Any, paths: Iterable[str]) -> None:  # noqa: ANN401
    """Ask front-end subscribers to re-render ``paths``."""
    if redis is None:
        return
    for path in paths:
        await redis.publish(REVALIDATE_CHANNEL, json.dumps({"path": path}))


async def revalidate_content(redis: Any, paths: Iterable[str]) -> None:  # noqa: ANN401
    """Invalidate everything a content validation transition can affect.

    Called after commit. Failures are logged; the committed transition stands.
    """
    try:
        await revalidate_tags(redis, CONTENT_TAGS)
        await revalidate_paths(redis, paths)
    except Exception:
        logger.warning("cache_revalidate_failed", exc_info=True)


async def revalidate_admin(redis: Any, tags: Iterable[str] = (), paths: Iterable[str] = ()) -> None:  # noqa: ANN401
    """Invalidate admin dashboards after a review queue changes.

    Called after commit, like ``revalidate_content``.
    """
    try:
        await revalidate_tags(redis, (ADMIN, *tags))
        await revalidate_paths(redis, paths)
    except Exception:
        logger.warning("cache_revalidate_failed", exc_info=True)
