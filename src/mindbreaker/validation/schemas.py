"""Request/response models for the admin validation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CORRECTION_FIELDS = ("name", "title", "description", "summary", "website_url")


class ValidationActionRequest(BaseModel):
    """Body of PATCH/POST ``/validations/{type}/{id}``.

    Omitted corrections are distinguished from explicit nulls through
    ``model_fields_set``.
    """

    model_config = ConfigDict(populate_by_name=True)

    action: str
    name: str | None = None
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    website_url: str | None = None
    rejection_reason: str | None = None
    target_id: str | None = Field(None, alias="targetId")

    def corrections(self) -> dict[str, Any]:
        return {k: getattr(self, k) for k in CORRECTION_FIELDS if k in self.model_fields_set}


class EditReviewRequest(BaseModel):
    action: str
    rejection_reason: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True


class PendingItem(BaseModel):
    id: str
    name: str
    is_validated: bool
    status: str
    author_id: int | None = None
    has_draft: bool = False
    created_at: datetime


class PendingEditRequest(BaseModel):
    id: str
    resource_type: str
    resource_id: str
    data: dict[str, Any]
    requested_by: int | None = None
    created_at: datetime


class PendingQueueResponse(BaseModel):
    organizations: list[PendingItem]
    expeditions: list[PendingItem]
    quests: list[PendingItem]
    edit_requests: list[PendingEditRequest]
