"""Quest completion and save/unsave endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_user
from mindbreaker.database import get_session
from mindbreaker.db.models import Profile
from mindbreaker.gamification.router import xp_response
from mindbreaker.gamification.xp_service import XPChange
from mindbreaker.progress import service
from mindbreaker.progress.schemas import CompletionResponse, SavedResponse
from mindbreaker.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1", tags=["Progress"])


def _completion(quest_id: str, completed: bool, change: XPChange, user: Profile) -> CompletionResponse:
    return CompletionResponse(
        quest_id=quest_id,
        completed=completed,
        xp_delta=change.new_total - change.old_total,
        leveled_up=change.leveled_up,
        xp=xp_response(user),
    )


@router.post("/quests/{quest_id}/complete", response_model=CompletionResponse)
async def complete_quest(
    quest_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    change = await service.complete_quest(db, redis, user.id, quest_id)
    return _completion(quest_id, True, change, user)


@router.delete("/quests/{quest_id}/complete", response_model=CompletionResponse)
async def undo_quest(
    quest_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    change = await service.undo_quest(db, redis, user.id, quest_id)
    return _completion(quest_id, False, change, user)


@router.post("/quests/{quest_id}/save", response_model=SavedResponse)
async def save_quest(
    quest_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return SavedResponse(saved=await service.set_quest_saved(db, user.id, quest_id, True))


@router.delete("/quests/{quest_id}/save", response_model=SavedResponse)
async def unsave_quest(
    quest_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return SavedResponse(saved=await service.set_quest_saved(db, user.id, quest_id, False))


@router.post("/expeditions/{expedition_id}/save", response_model=SavedResponse)
async def save_expedition(
    expedition_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return SavedResponse(saved=await service.set_expedition_saved(db, user.id, expedition_id, True))


@router.delete("/expeditions/{expedition_id}/save", response_model=SavedResponse)
async def unsave_expedition(
    expedition_id: str,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    return SavedResponse(saved=await service.set_expedition_saved(db, user.id, expedition_id, False))
