"""Per-user notification records.

Other pipelines stage notifications with ``add_notification`` inside their
own unit of work; ``create_notification`` is the standalone variant.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..config import settings
from ..db import commit_or_rollback
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


def add_notification(
    session: AsyncSession,
    user_id: str,
    type: models.NotificationType,
    title: str,
    message: str,
    *,
    related_item_id: str | None = None,
    related_user_id: str | None = None,
) -> models.Notification:
    """Stage a notification in the current session without committing."""
    notification = models.Notification(
        id=models.new_id(),
        user_id=user_id,
        type=models.NotificationType(type).value,
        title=title,
        message=message,
        related_item_id=related_item_id,
        related_user_id=related_user_id,
        is_read=False,
        created_at=datetime.utcnow(),
    )
    session.add(notification)
    logger.debug(f"Queued '{notification.type}' notification for user {user_id}")
    return notification


async def create_notification(
    session: AsyncSession,
    user_id: str,
    type: models.NotificationType,
    title: str,
    message: str,
    *,
    related_item_id: str | None = None,
    related_user_id: str | None = None,
) -> models.Notification:
    notification = add_notification(
        session,
        user_id,
        type,
        title,
        message,
        related_item_id=related_item_id,
        related_user_id=related_user_id,
    )
    await commit_or_rollback(session, "creating notification")
    return notification


async def get_unread_notifications(session: AsyncSession, user_id: str) -> list[models.Notification]:
    result = await session.execute(
        select(models.Notification)
        .where(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        )
        .order_by(models.Notification.created_at.desc())
    )
    return list(result.scalars().all())


async def get_user_notifications(
    session: AsyncSession,
    user_id: str,
    limit: int | None = None,
) -> list[models.Notification]:
    """Most recent notifications first."""
    if limit is None:
        limit = settings.notifications.page_size
    result = await session.execute(
        select(models.Notification)
        .where(models.Notification.user_id == user_id)
        .order_by(models.Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_as_read(session: AsyncSession, notification_id: str, user_id: str) -> models.Notification:
    """Mark one of the user's notifications as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to someone else
    """
    notification = await session.get(models.Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError(f"Notification {notification_id} not found")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        await commit_or_rollback(session, "marking notification read")
    return notification


async def mark_all_as_read(session: AsyncSession, user_id: str) -> int:
    """Mark every unread notification of the user as read; returns how many changed."""
    result = await session.execute(
        update(models.Notification)
        .where(
            models.Notification.user_id == user_id,
            models.Notification.is_read.is_(False),
        )
        .values(is_read=True, read_at=datetime.utcnow())
    )
    await commit_or_rollback(session, "marking all notifications read")
    logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
    return result.rowcount
