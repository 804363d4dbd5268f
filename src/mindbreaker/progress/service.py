"""Quest completion and bookmarks.

Completing a quest awards its ``xp_reward`` through ``adjust_xp``; undoing
it takes back exactly what was earned. Both commit in one transaction with
the progress row, then broadcast any level-up.

Every write here locks the caller's profile row before reading progress or
bookmark state; a unique-key race that slips past the lock is reported the
same way as the sequential case.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.database import atomic
from mindbreaker.db.models import Expedition, Quest, QuestProgress, SavedExpedition, SavedQuest
from mindbreaker.errors import InvalidInput, NotFound
from mindbreaker.gamification.xp_service import XPChange, adjust_xp, lock_profile, publish_xp_change

logger = structlog.get_logger()


async def _get_available_quest(db: AsyncSession, quest_id: str) -> Quest:
    quest = await db.get(Quest, quest_id)
    if quest is None:
        raise NotFound("Quest not found")
    if quest.status == "archived":
        raise InvalidInput("Quest is archived")
    return quest


async def _get_progress(db: AsyncSession, user_id: int, quest_id: str) -> QuestProgress | None:
    result = await db.execute(
        select(QuestProgress).where(
            QuestProgress.user_id == user_id,
            QuestProgress.quest_id == quest_id,
        )
    )
    return result.scalar_one_or_none()


async def complete_quest(
    db: AsyncSession, redis: object | None, user_id: int, quest_id: str
) -> XPChange:
    """Mark a quest completed and award its XP."""
    async with atomic(db):
        await lock_profile(db, user_id)
        quest = await _get_available_quest(db, quest_id)
        progress = await _get_progress(db, user_id, quest_id)
        if progress is not None and progress.completed:
            raise InvalidInput("Quest already completed")
        if progress is None:
            progress = QuestProgress(user_id=user_id, quest_id=quest_id)
            db.add(progress)
            try:
                await db.flush()
            except IntegrityError as e:
                raise InvalidInput("Quest already completed") from e

        change = await adjust_xp(
            db,
            user_id,
            quest.xp_reward,
            "quest_complete",
            source_id=quest_id,
            description=f"Completed {quest.title}",
        )
        progress.completed = True
        progress.completed_at = datetime.now(timezone.utc)
        progress.xp_earned = change.new_total - change.old_total

    logger.info("quest_completed", user_id=user_id, quest_id=quest_id, xp=progress.xp_earned)
    await publish_xp_change(redis, change)
    return change


async def undo_quest(
    db: AsyncSession, redis: object | None, user_id: int, quest_id: str
) -> XPChange:
    """Reverse a completion, taking back the XP it earned (floored at 0)."""
    async with atomic(db):
        await lock_profile(db, user_id)
        quest = await db.get(Quest, quest_id)
        if quest is None:
            raise NotFound("Quest not found")
        progress = await _get_progress(db, user_id, quest_id)
        if progress is None or not progress.completed:
            raise InvalidInput("Quest is not completed")

        change = await adjust_xp(
            db,
            user_id,
            -progress.xp_earned,
            "quest_undo",
            source_id=quest_id,
            description=f"Undid {quest.title}",
        )
        progress.completed = False
        progress.completed_at = None
        progress.xp_earned = 0

    logger.info("quest_uncompleted", user_id=user_id, quest_id=quest_id)
    await publish_xp_change(redis, change)
    return change


# ---------------------------------------------------------------------------
# Bookmarks
# ---------------------------------------------------------------------------


async def _is_saved(db: AsyncSession, model: type, column: str, user_id: int, target_id: str) -> bool:
    result = await db.execute(
        select(model.id).where(model.user_id == user_id, getattr(model, column) == target_id)
    )
    return result.scalar_one_or_none() is not None


async def _set_saved(
    db: AsyncSession,
    model: type,
    column: str,
    target: type,
    label: str,
    user_id: int,
    target_id: str,
    saved: bool,
) -> bool:
    async with atomic(db):
        await lock_profile(db, user_id)
        if await db.get(target, target_id) is None:
            raise NotFound(f"{label} not found")
        if not saved:
            await db.execute(delete(model).where(model.user_id == user_id, getattr(model, column) == target_id))
        elif not await _is_saved(db, model, column, user_id, target_id):
            db.add(model(user_id=user_id, **{column: target_id}))
            try:
                await db.flush()
            except IntegrityError:
                # Another request saved it first; the outcome is the same
                await db.rollback()
                logger.info("bookmark_already_saved", user_id=user_id, target=column, target_id=target_id)
    return saved


async def set_quest_saved(db: AsyncSession, user_id: int, quest_id: str, saved: bool) -> bool:
    """Save or unsave a quest. Idempotent; returns the resulting state."""
    return await _set_saved(db, SavedQuest, "quest_id", Quest, "Quest", user_id, quest_id, saved)


async def set_expedition_saved(db: AsyncSession, user_id: int, expedition_id: str, saved: bool) -> bool:
    """Save or unsave an expedition. Idempotent; returns the resulting state."""
    return await _set_saved(
        db, SavedExpedition, "expedition_id", Expedition, "Expedition", user_id, expedition_id, saved
    )
