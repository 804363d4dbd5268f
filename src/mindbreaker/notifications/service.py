"""Notification persistence and per-user push.

Notifications are:
1. Persisted in the database
2. Published on ``ws:user:{user_id}`` for any realtime subscriber
3. Read back, newest first, until ``expires_at`` passes

Types: gamification, validation, system
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.db.models import Notification

logger = structlog.get_logger()

VALID_TYPES = frozenset({"gamification", "validation", "system"})


async def create_notification(
    db: AsyncSession,
    user_id: int,
    type_: str,
    subtype: str,
    title: str,
    description: str | None = None,
    action_url: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Persist a notification and flush it so it has an id."""
    if type_ not in VALID_TYPES:
        msg = f"Invalid notification type: {type_}"
        raise ValueError(msg)

    notification = Notification(
        user_id=user_id,
        type=type_,
        subtype=subtype,
        title=title,
        description=description,
        action_url=action_url,
        notification_metadata=metadata or {},
    )
    db.add(notification)
    await db.flush()
    return notification


async def push_notification(redis: object | None, notification: Notification) -> None:
    """Publish a formatted notification on ``ws:user:{user_id}``.

    Must be called after the notification is committed; delivery failures are
    logged and never undo the committed state.
    """
    if redis is None:
        return

    payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "subtype": notification.subtype,
            "title": notification.title,
            "description": notification.description,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
            "actionUrl": notification.action_url,
        },
    }
    try:
        await redis.publish(f"ws:user:{notification.user_id}", json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("notification_push_failed", user_id=notification.user_id, exc_info=True)


def _live(user_id: int, now: datetime):  # noqa: ANN202
    return (
        Notification.user_id == user_id,
        or_(Notification.expires_at.is_(None), Notification.expires_at > now),
    )


async def get_notifications(
    db: AsyncSession,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    """The user's unexpired notifications, newest first."""
    query = select(Notification).where(*_live(user_id, datetime.now(timezone.utc)))
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await db.execute(
        query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def set_read(db: AsyncSession, user_id: int, notification_id: int, read: bool) -> bool:
    """Set the read flag on one of the user's notifications. Returns False if it isn't theirs."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=read)
    )
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(*_live(user_id, datetime.now(timezone.utc)), Notification.read.is_(False))
    )
    return result.scalar_one()
