"""Requests for the admin role.

A user files a request with a reason; every admin is notified. An admin
approves (granting ``is_admin``) or rejects it. Only pending requests can be
reviewed, and a user holds at most one pending request at a time.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mindbreaker.cache.tags import revalidate_admin
from mindbreaker.database import atomic
from mindbreaker.db.models import AdminRequest, Notification, Profile
from mindbreaker.errors import InvalidInput, NotFound
from mindbreaker.gamification.xp_service import lock_profile
from mindbreaker.notifications.service import create_notification, push_notification

logger = structlog.get_logger()

MIN_REASON_LENGTH = 10
REVIEW_PATH = "/guild-hall/admin/requests"

REASON_TOO_SHORT = f"Please provide a reason (at least {MIN_REASON_LENGTH} characters)"
ALREADY_PENDING = "You already have a pending admin request"


async def _after_commit(redis: object | None, notifications: list[Notification]) -> None:
    for notification in notifications:
        await push_notification(redis, notification)
    await revalidate_admin(redis, paths=[REVIEW_PATH])


async def create_request(db: AsyncSession, redis: object | None, user: Profile, reason: str | None) -> AdminRequest:
    reason = (reason or "").strip()
    if len(reason) < MIN_REASON_LENGTH:
        raise InvalidInput(REASON_TOO_SHORT)
    if user.is_admin:
        raise InvalidInput("You are already an admin")

    notifications: list[Notification] = []
    async with atomic(db):
        existing = await db.execute(
            select(AdminRequest.id).where(AdminRequest.user_id == user.id, AdminRequest.status == "pending")
        )
        if existing.first() is not None:
            raise InvalidInput(ALREADY_PENDING)

        req = AdminRequest(user_id=user.id, reason=reason)
        db.add(req)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost the race to a concurrent request; the partial unique index caught it
            raise InvalidInput(ALREADY_PENDING) from e

        admins = await db.execute(
            select(Profile.id).where(Profile.is_admin.is_(True), Profile.is_banned.is_(False))
        )
        for admin_id in admins.scalars().all():
            notifications.append(
                await create_notification(
                    db,
                    admin_id,
                    "system",
                    "new_admin_request",
                    "New Admin Request",
                    description=f"{user.username} has requested admin access",
                    action_url=REVIEW_PATH,
                    metadata={"admin_request_id": req.id, "user_id": user.id},
                )
            )

    logger.info("admin_request_created", request_id=req.id, user_id=user.id, admins_notified=len(notifications))
    await _after_commit(redis, notifications)
    return req


async def list_requests(db: AsyncSession, status: str | None = "pending") -> list[AdminRequest]:
    """Requests with their requester loaded, oldest first."""
    query = select(AdminRequest).options(selectinload(AdminRequest.user))
    if status is not None:
        query = query.where(AdminRequest.status == status)
    result = await db.execute(query.order_by(AdminRequest.created_at.asc()))
    return list(result.scalars().all())


async def review_request(
    db: AsyncSession,
    redis: object | None,
    request_id: str,
    approve: bool,
    admin: Profile,
) -> AdminRequest:
    """Approve or reject a pending request; anything else is "not found"."""
    async with atomic(db):
        result = await db.execute(
            select(AdminRequest)
            .where(AdminRequest.id == request_id, AdminRequest.status == "pending")
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        req = result.scalar_one_or_none()
        if req is None:
            raise NotFound("Request not found")

        req.status = "approved" if approve else "rejected"
        req.reviewed_by = admin.id
        req.reviewed_at = datetime.now(timezone.utc)

        if approve:
            profile = await lock_profile(db, req.user_id)
            profile.is_admin = True
            notification = await create_notification(
                db,
                req.user_id,
                "system",
                "admin_request_approved",
                "Admin Request Approved!",
                description="You now have admin access.",
                action_url="/guild-hall/admin",
                metadata={"admin_request_id": req.id},
            )
        else:
            notification = await create_notification(
                db,
                req.user_id,
                "system",
                "admin_request_rejected",
                "Admin Request Update",
                description="Your admin request was not approved at this time.",
                metadata={"admin_request_id": req.id},
            )

    logger.info(
        "admin_request_reviewed",
        request_id=request_id,
        user_id=req.user_id,
        status=req.status,
        admin_id=admin.id,
    )
    await _after_commit(redis, [notification])
    return req
