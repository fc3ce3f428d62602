"""Notification endpoints: list, mark one read, mark all read."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.auth.dependencies import get_current_user_id
from prepquest.database import get_session
from prepquest.errors import NotFound
from prepquest.notifications.schemas import MarkReadResponse, NotificationItem, NotificationsResponse
from prepquest.notifications.service import get_notifications, mark_all_read, mark_as_read

router = APIRouter(prefix="/api/v1/users/me/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationsResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Get paginated notifications, newest first, with the unread count."""
    items, total, unread = await get_notifications(db, user_id, page, per_page)
    return NotificationsResponse(
        notifications=[NotificationItem.model_validate(n, from_attributes=True) for n in items],
        total=total,
        unread_count=unread,
        page=page,
        per_page=per_page,
    )


@router.post("/read-all", response_model=MarkReadResponse)
async def read_all_notifications(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Mark every notification read."""
    return MarkReadResponse(updated=await mark_all_read(db, user_id))


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def read_notification(
    notification_id: int,
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Mark a single notification read."""
    if not await mark_as_read(db, user_id, notification_id):
        raise NotFound("Notification not found")
    return MarkReadResponse(updated=1)
