"""Gamification API endpoints: XP, level progress, level-up celebrations, streaks, leaderboard."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_user
from mindbreaker.config import get_settings
from mindbreaker.database import atomic, get_session
from mindbreaker.db.models import Profile, XPLedger
from mindbreaker.errors import NotFound
from mindbreaker.gamification.leveling import compute_level
from mindbreaker.gamification.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    LevelUpItem,
    PendingLevelUpsResponse,
    StreakResponse,
    XPHistoryEntry,
    XPHistoryResponse,
    XPResponse,
)
from mindbreaker.gamification.streak_service import record_activity
from mindbreaker.gamification.xp_service import (
    acknowledge_level_celebration,
    get_pending_level_celebrations,
)

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def xp_response(profile: Profile) -> XPResponse:
    return XPResponse(total_xp=profile.total_xp, **compute_level(profile.total_xp))


# ── Public endpoints ──


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    limit: int | None = Query(None, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
):
    """Top profiles by total XP, ties broken by username."""
    size = limit or get_settings().leaderboard_size
    result = await db.execute(
        select(Profile)
        .where(Profile.is_banned.is_(False))
        .order_by(Profile.total_xp.desc(), Profile.username.asc())
        .limit(size)
    )
    return LeaderboardResponse(
        entries=[
            LeaderboardEntry(
                rank=i,
                user_id=p.id,
                username=p.username,
                level=compute_level(p.total_xp)["level"],
                total_xp=p.total_xp,
            )
            for i, p in enumerate(result.scalars().all(), start=1)
        ]
    )


# ── Authenticated endpoints ──


@router.get("/users/me/xp", response_model=XPResponse)
async def get_my_xp(user: Profile = Depends(require_user)):
    """Current user's XP, level and progress bar."""
    return xp_response(user)


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def get_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """XP ledger history (paginated, newest first)."""
    total_result = await db.execute(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user.id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user.id)
        .order_by(XPLedger.created_at.desc(), XPLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in result.scalars().all()
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/me/level-ups/pending", response_model=PendingLevelUpsResponse)
async def get_pending_level_ups(
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Level-up celebrations the user hasn't seen yet."""
    items = await get_pending_level_celebrations(db, user.id)
    return PendingLevelUpsResponse(
        celebrations=[LevelUpItem(**item) for item in items],
    )


@router.post("/users/me/level-ups/{celebration_id}/ack", status_code=204)
async def acknowledge_level_up(
    celebration_id: int,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark a level-up celebration as seen."""
    updated = await acknowledge_level_celebration(db, user.id, celebration_id)
    if not updated:
        raise NotFound("Celebration not found or already acknowledged")


@router.post("/users/me/streak", response_model=StreakResponse)
async def update_my_streak(
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Record today's activity; a second call on the same UTC day changes nothing."""
    async with atomic(db):
        streak = await record_activity(db, user.id)
    return StreakResponse(
        streak_days=streak.streak_days,
        updated=streak.updated,
        last_streak_at=streak.last_streak_at,
    )
