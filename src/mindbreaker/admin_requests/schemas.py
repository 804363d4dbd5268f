"""Admin request models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AdminRequestCreate(BaseModel):
    reason: str | None = None


class AdminRequestResponse(BaseModel):
    id: str
    user_id: int
    username: str | None = None
    reason: str
    status: str
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class AdminRequestListResponse(BaseModel):
    requests: list[AdminRequestResponse]
