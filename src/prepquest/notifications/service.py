"""Notification creation and delivery service.

Notifications are:
1. Persisted in the database (own commit, after the state change committed)
2. Pushed to the user via Redis pub/sub (``ws:user:{user_id}``)

Delivery is fire-and-forget: a failure is logged and swallowed, never
propagated to the operation that triggered it.

Types: level_up, achievement, reward
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prepquest.db.models import Notification

logger = logging.getLogger(__name__)

VALID_TYPES = {"level_up", "achievement", "reward"}


@dataclass
class PendingNotification:
    user_id: uuid.UUID
    type: str
    title: str
    message: str | None = None
    icon: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


async def push_notification_to_user(redis: Any | None, notification: Notification) -> None:
    """Publish a formatted notification to ws:user:{user_id} for the socket bridge."""
    if redis is None:
        return

    ws_payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "icon": notification.icon,
            "data": notification.data,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
        },
    }
    try:
        await redis.publish(f"ws:user:{notification.user_id}", json.dumps(ws_payload))
    except Exception:
        logger.warning("Failed to push notification via ws:user:%s", notification.user_id, exc_info=True)


async def emit_notification(
    db: AsyncSession,
    redis: Any | None,
    user_id: uuid.UUID,
    type_: str,
    title: str,
    message: str | None,
    icon: str | None,
    data: dict[str, Any] | None,
    now: datetime,
) -> Notification | None:
    """Persist and push one notification. Never raises; returns None when delivery failed."""
    if type_ not in VALID_TYPES:
        logger.warning("Dropping notification for user %s: invalid type %r", user_id, type_)
        return None

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        icon=icon,
        data=data or {},
        is_read=False,
        created_at=now,
    )
    try:
        db.add(notification)
        await db.commit()
    except Exception:
        logger.warning("Failed to persist %s notification for user %s", type_, user_id, exc_info=True)
        await db.rollback()
        return None

    await push_notification_to_user(redis, notification)
    return notification


class NotificationOutbox:
    """Notifications queued during a pipeline and delivered once it has committed."""

    def __init__(self) -> None:
        self.pending: list[PendingNotification] = []

    def add(self, notification: PendingNotification) -> None:
        self.pending.append(notification)

    def __len__(self) -> int:
        return len(self.pending)

    async def deliver(self, db: AsyncSession, redis: Any | None, now: datetime) -> int:
        """Emit every queued notification. Returns how many were delivered."""
        delivered = 0
        pending, self.pending = self.pending, []
        for item in pending:
            result = await emit_notification(
                db, redis, item.user_id, item.type, item.title, item.message, item.icon, item.data, now,
            )
            if result is not None:
                delivered += 1
        return delivered


async def get_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int, int]:
    """Get user's notifications (paginated, most recent first) with total and unread counts."""
    offset = (page - 1) * per_page

    total = (
        await db.execute(select(func.count()).select_from(Notification).where(Notification.user_id == user_id))
    ).scalar_one()
    unread = (
        await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
    ).scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total, unread


async def mark_as_read(db: AsyncSession, user_id: uuid.UUID, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount > 0


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Mark all of a user's notifications read. Returns the number updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount
