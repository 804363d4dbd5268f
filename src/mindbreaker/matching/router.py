"""Duplicate-name lookup used by the create forms."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_user
from mindbreaker.database import get_session
from mindbreaker.db.models import Profile
from mindbreaker.matching.fuzzy import match_candidates
from mindbreaker.matching.schemas import SimilarResponse
from mindbreaker.validation.registry import get_kind

router = APIRouter(prefix="/api/v1", tags=["Matching"])


@router.get("/{type_}/similar", response_model=SimilarResponse)
async def similar(
    type_: str,
    q: str = Query("", max_length=200),
    _user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Exact duplicate (if any) or near-duplicate names of non-archived records."""
    kind = get_kind(type_)
    name_col = getattr(kind.model, kind.name_field)
    result = await db.execute(
        select(kind.model.id, name_col)
        .where(kind.model.status != "archived")
        .order_by(name_col.asc())
    )
    candidates = [{"id": row[0], "name": row[1]} for row in result.all()]
    return SimilarResponse(query=q, **match_candidates(q, candidates))
