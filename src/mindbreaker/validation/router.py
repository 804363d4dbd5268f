"""Admin validation endpoints.

Every route requires the admin capability, checked once at the router
level before any handler runs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.auth.dependencies import require_admin
from mindbreaker.database import get_session
from mindbreaker.db.models import Profile
from mindbreaker.errors import InvalidInput
from mindbreaker.redis_client import get_redis_dep
from mindbreaker.validation import service
from mindbreaker.validation.registry import ENTITY_KINDS, get_kind
from mindbreaker.validation.schemas import (
    EditReviewRequest,
    PendingEditRequest,
    PendingItem,
    PendingQueueResponse,
    SuccessResponse,
    ValidationActionRequest,
)

router = APIRouter(
    prefix="/api/v1/validations",
    tags=["Validations"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=PendingQueueResponse)
async def pending_queue(db: AsyncSession = Depends(get_session)):
    """Everything awaiting review."""
    pending = await service.list_pending(db)

    def _items(type_: str) -> list[PendingItem]:
        kind = ENTITY_KINDS[type_]
        return [
            PendingItem(
                id=r.id,
                name=getattr(r, kind.name_field),
                is_validated=r.is_validated,
                status=r.status,
                author_id=r.author_id,
                has_draft=getattr(r, "draft_data", None) is not None,
                created_at=r.created_at,
            )
            for r in pending[type_]
        ]

    return PendingQueueResponse(
        organizations=_items("organizations"),
        expeditions=_items("expeditions"),
        quests=_items("quests"),
        edit_requests=[
            PendingEditRequest(
                id=e.id,
                resource_type=e.resource_type,
                resource_id=e.resource_id,
                data=e.data or {},
                requested_by=e.requested_by,
                created_at=e.created_at,
            )
            for e in pending["edit_requests"]
        ],
    )


# ── Edit requests (declared before /{type}/{id} so "edits" is never a type) ──


@router.patch("/edits/{request_id}", response_model=SuccessResponse)
async def review_edit_request(
    request_id: str,
    body: EditReviewRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    await service.review_edit_request(db, redis, request_id, body.action, body.rejection_reason, admin)
    return SuccessResponse()


@router.delete("/edits/{request_id}", response_model=SuccessResponse)
async def delete_edit_request(
    request_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    await service.delete_edit_request(db, redis, request_id, admin)
    return SuccessResponse()


# ── Entity transitions ──


@router.patch("/{type_}/{record_id}", response_model=SuccessResponse)
async def transition(
    type_: str,
    record_id: str,
    body: ValidationActionRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """approve | update | reject."""
    kind = get_kind(type_)

    if body.action == "approve":
        await service.approve(db, redis, kind, record_id, admin)
    elif body.action == "update":
        await service.update_and_validate(db, redis, kind, record_id, body.corrections(), admin)
    elif body.action == "reject":
        await service.reject(db, redis, kind, record_id, body.rejection_reason, admin)
    else:
        raise InvalidInput("Invalid action")
    return SuccessResponse()


@router.post("/{type_}/{record_id}", response_model=SuccessResponse)
async def merge(
    type_: str,
    record_id: str,
    body: ValidationActionRequest,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Merge the record into ``targetId``."""
    kind = get_kind(type_)
    if body.action != "merge":
        raise InvalidInput("Invalid action")
    await service.merge(db, redis, kind, record_id, body.target_id, admin)
    return SuccessResponse()


@router.delete("/{type_}/{record_id}", response_model=SuccessResponse)
async def delete(
    type_: str,
    record_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    kind = get_kind(type_)
    await service.delete_record(db, redis, kind, record_id, admin)
    return SuccessResponse()
