"""
Notification Service - in-app notification records and read state.

Records are written by the delivery queue and read by the UI feed (REST poll
or websocket push). History is kept; only the read flag ever changes.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kindworld.core.structured_logging import build_log_context
from kindworld.db.enums import NotificationType
from kindworld.db.models import Notification
from kindworld.db.types import utcnow
from kindworld.services.errors import NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

# Hard cap for a single feed read
MAX_FEED_LIMIT = 50
DEFAULT_FEED_LIMIT = 20
MARK_ALL_READ_PASSES = 3


def create_notification(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    verification_request_id: UUID | None = None,
    metadata: dict | None = None,
) -> Notification:
    """Create and commit an unread in-app notification."""
    notification = Notification(
        user_id=user_id,
        type=NotificationType(type).value,
        title=title,
        message=message,
        verification_request_id=verification_request_id,
        metadata_=metadata,
        read=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notifications(
    db: Session,
    user_id: str,
    limit: int = DEFAULT_FEED_LIMIT,
    unread_only: bool = False,
) -> list[Notification]:
    """Get notifications for user, newest first (at most 50)."""
    limit = max(1, min(limit, MAX_FEED_LIMIT))
    query = db.query(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.read.is_(False))

    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def get_unread_count(db: Session, user_id: str) -> int:
    """Get count of unread notifications."""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .count()
    )


def mark_read(db: Session, notification_id: UUID, user_id: str) -> Notification:
    """Mark a notification as read. Only the recipient may do so."""
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification not found")
    if notification.user_id != user_id:
        raise UnauthorizedError("Notification belongs to another user")

    if not notification.read:
        notification.read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: str) -> int:
    """
    Mark all notifications as read. Returns count updated.

    Each record is updated independently; a failed record is retried on the
    next pass (up to three passes) instead of aborting the whole batch.
    """
    total = 0
    for attempt in range(1, MARK_ALL_READ_PASSES + 1):
        unread_ids = db.scalars(
            select(Notification.id).where(
                Notification.user_id == user_id, Notification.read.is_(False)
            )
        ).all()
        if not unread_ids:
            break

        for notification_id in unread_ids:
            try:
                result = db.execute(
                    update(Notification)
                    .where(Notification.id == notification_id, Notification.read.is_(False))
                    .values(read=True, read_at=utcnow())
                    .execution_options(synchronize_session=False)
                )
                db.commit()
                total += result.rowcount or 0
            except SQLAlchemyError:
                db.rollback()
                logger.warning(
                    "mark_all_read: update failed (pass %s)",
                    attempt,
                    extra=build_log_context(user_id=user_id),
                    exc_info=True,
                )

    db.expire_all()
    return total
