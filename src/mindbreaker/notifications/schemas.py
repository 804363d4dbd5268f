"""Notification request/response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    subtype: str
    title: str
    description: str | None = None
    timestamp: datetime
    read: bool
    action_url: str | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class NotificationReadRequest(BaseModel):
    read: bool = True


class UnreadCountResponse(BaseModel):
    unread_count: int
