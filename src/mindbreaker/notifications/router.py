"""Notification API endpoints: the caller's own notifications only."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_user
from mindbreaker.database import atomic, get_session
from mindbreaker.db.models import Profile
from mindbreaker.errors import NotFound
from mindbreaker.notifications.schemas import (
    NotificationListResponse,
    NotificationReadRequest,
    NotificationResponse,
    UnreadCountResponse,
)
from mindbreaker.notifications.service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    set_read,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Latest 50 unexpired notifications, newest first."""
    notifications = await get_notifications(db, user.id, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                id=str(n.id),
                type=n.type,
                subtype=n.subtype,
                title=n.title,
                description=n.description,
                timestamp=n.created_at,
                read=n.read,
                action_url=n.action_url,
            )
            for n in notifications
        ]
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return UnreadCountResponse(unread_count=await get_unread_count(db, user.id))


@router.post("/notifications/read-all")
async def mark_all_read(
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    async with atomic(db):
        count = await mark_all_as_read(db, user.id)
    return {"updated": count}


@router.patch("/notifications/{notification_id}")
async def mark_notification(
    notification_id: int,
    body: NotificationReadRequest,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark one notification read (or unread again)."""
    async with atomic(db):
        found = await set_read(db, user.id, notification_id, body.read)
        if not found:
            raise NotFound("Notification not found")
    return {"success": True}
