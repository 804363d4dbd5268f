"""Admin role request endpoints.

Filing a request needs a signed-in user; listing and reviewing need an admin.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mindbreaker.admin_requests import service
from mindbreaker.admin_requests.schemas import (
    AdminRequestCreate,
    AdminRequestListResponse,
    AdminRequestResponse,
)
from mindbreaker.auth.dependencies import require_admin, require_user
from mindbreaker.database import get_session
from mindbreaker.db.models import AdminRequest, Profile
from mindbreaker.redis_client import get_redis_dep

router = APIRouter(prefix="/api/v1/admin-requests", tags=["Admin requests"])

def _response(req: AdminRequest, username: str | None = None) -> AdminRequestResponse:
    return AdminRequestResponse(
        id=req.id,
        user_id=req.user_id,
        username=username,
        reason=req.reason,
        status=req.status,
        reviewed_by=req.reviewed_by,
        reviewed_at=req.reviewed_at,
        created_at=req.created_at,
    )


@router.post("", response_model=AdminRequestResponse, status_code=201)
async def create_admin_request(
    body: AdminRequestCreate,
    user: Profile = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    req = await service.create_request(db, redis, user, body.reason)
    return _response(req, user.username)


@router.get("", response_model=AdminRequestListResponse)
async def list_admin_requests(
    status: str = Query("pending", pattern="^(pending|approved|rejected)$"),
    _admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Requests in ``status``, oldest first."""
    requests = await service.list_requests(db, status)
    return AdminRequestListResponse(requests=[_response(r, r.user.username) for r in requests])


@router.post("/{request_id}/approve", response_model=AdminRequestResponse)
async def approve_admin_request(
    request_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    req = await service.review_request(db, redis, request_id, True, admin)
    return _response(req)


@router.post("/{request_id}/reject", response_model=AdminRequestResponse)
async def reject_admin_request(
    request_id: str,
    admin: Profile = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    req = await service.review_request(db, redis, request_id, False, admin)
    return _response(req)
