"""Pydantic response models for notification endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class NotificationItem(BaseModel):
    id: int
    type: str
    title: str
    message: str | None = None
    icon: str | None = None
    data: dict = {}
    is_read: bool
    created_at: datetime


class NotificationsResponse(BaseModel):
    notifications: list[NotificationItem]
    total: int
    unread_count: int
    page: int
    per_page: int


class MarkReadResponse(BaseModel):
    updated: int
