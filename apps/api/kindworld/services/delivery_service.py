"""Delivery queue - fan-out of verification notifications to channels.

In-app notifications are written immediately on enqueue. Emails are rendered
up front and stored as QueuedDelivery rows; workers claim them with a lease,
send them, and record the outcome (sent / retry / failed).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kindworld.core.config import settings
from kindworld.core.structured_logging import build_log_context
from kindworld.db.enums import DeliveryStatus, NotificationType, Role
from kindworld.db.models import Account, QueuedDelivery
from kindworld.db.types import utcnow
from kindworld.schemas.notification import PreferencesRead
from kindworld.services import notification_service, preference_service, template_service
from kindworld.services.email_sender import EmailSender
from kindworld.services.errors import (
    AlreadyProcessedError,
    DeliveryFailure,
    NotFoundError,
)

logger = logging.getLogger(__name__)

# Fixed attempt budget per email; not configurable
MAX_DELIVERY_RETRIES = 3


@dataclass
class DeliveryResult:
    """Outcome of one enqueue call, per channel."""

    success: bool
    in_app_id: UUID | None = None
    queue_id: UUID | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class ProcessSummary:
    """Counts for one processed batch."""

    claimed: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0
    cancelled: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class _OutgoingEmail:
    queue_id: UUID
    user_id: str
    to_email: str | None
    subject: str
    html: str
    text: str | None


# =============================================================================
# Enqueue
# =============================================================================


def _load_preferences(db: Session, user_id: str) -> PreferencesRead:
    try:
        return preference_service.get_preferences(db, user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Preference lookup failed, using defaults",
            extra=build_log_context(user_id=user_id),
            exc_info=True,
        )
        return PreferencesRead()


def enqueue(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    template_data: dict[str, str] | None = None,
    related_request_id: UUID | None = None,
    metadata: dict | None = None,
) -> DeliveryResult:
    """
    Deliver a notification to one user on every enabled channel.

    - in-app: written immediately (no retry)
    - email: rendered and queued as pending, only when template data is given
    """
    type = NotificationType(type)
    prefs = _load_preferences(db, user_id)
    result = DeliveryResult(success=False)

    if prefs.in_app_notifications:
        try:
            notification = notification_service.create_notification(
                db,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                verification_request_id=related_request_id,
                metadata=metadata,
            )
            result.in_app_id = notification.id
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "In-app notification failed: %s",
                exc.__class__.__name__,
                extra=build_log_context(user_id=user_id),
            )
            result.errors.append(f"In-app notification failed: {exc.__class__.__name__}")

    if prefs.email_notifications and template_data:
        try:
            rendered = template_service.render_template(type, template_data)
            item = QueuedDelivery(
                user_id=user_id,
                type=type.value,
                title=rendered.subject,
                message=rendered.text_body,
                email_subject=rendered.subject,
                email_html=rendered.html_body,
                email_text=rendered.text_body,
                retry_count=0,
                max_retries=MAX_DELIVERY_RETRIES,
                status=DeliveryStatus.PENDING.value,
                scheduled_at=utcnow(),
                metadata_={
                    **(metadata or {}),
                    "verification_request_id": str(related_request_id) if related_request_id else None,
                    "template_data": dict(template_data),
                },
            )
            db.add(item)
            db.commit()
            db.refresh(item)
            result.queue_id = item.id
        except KeyError as exc:
            result.errors.append(str(exc))
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Email enqueue failed: %s",
                exc.__class__.__name__,
                extra=build_log_context(user_id=user_id),
            )
            result.errors.append(f"Email enqueue failed: {exc.__class__.__name__}")

    result.success = (
        not result.errors or result.in_app_id is not None or result.queue_id is not None
    )
    return result


def notify_admins(
    db: Session,
    type: NotificationType,
    title: str,
    message: str,
    template_data: dict[str, str] | None = None,
    related_request_id: UUID | None = None,
) -> int:
    """Enqueue a notification for every admin account. Returns successful count."""
    admin_ids = db.scalars(
        select(Account.id).where(Account.role == Role.ADMIN.value).order_by(Account.id)
    ).all()
    if not admin_ids:
        raise DeliveryFailure("No admin users found")

    delivered = 0
    for admin_id in admin_ids:
        result = enqueue(
            db,
            user_id=admin_id,
            type=type,
            title=title,
            message=message,
            template_data=template_data,
            related_request_id=related_request_id,
        )
        if result.success:
            delivered += 1
        else:
            logger.warning(
                "Admin notification failed: %s",
                "; ".join(result.errors),
                extra=build_log_context(user_id=admin_id),
            )
    return delivered


# =============================================================================
# Claim / process
# =============================================================================


def _due_clause(now: datetime):
    return or_(
        and_(
            QueuedDelivery.status == DeliveryStatus.PENDING.value,
            QueuedDelivery.scheduled_at <= now,
        ),
        and_(
            QueuedDelivery.status == DeliveryStatus.IN_FLIGHT.value,
            QueuedDelivery.lease_expires_at < now,
        ),
    )


def claim_pending_deliveries(
    db: Session,
    worker_id: str,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[QueuedDelivery]:
    """
    Claim due queue items for one worker.

    Due = pending and scheduled <= now, or in_flight with an expired lease.
    Each candidate is moved to in_flight by a conditional update, so two
    workers never hold the same item.
    """
    now = now or utcnow()
    limit = limit or settings.DELIVERY_BATCH_SIZE
    lease_until = now + timedelta(seconds=settings.DELIVERY_LEASE_SECONDS)

    candidate_ids = db.scalars(
        select(QueuedDelivery.id)
        .where(_due_clause(now))
        .order_by(QueuedDelivery.scheduled_at)
        .limit(limit)
        .with_for_update(skip_locked=True)
    ).all()

    claimed_ids = []
    for item_id in candidate_ids:
        result = db.execute(
            update(QueuedDelivery)
            .where(QueuedDelivery.id == item_id, _due_clause(now))
            .values(
                status=DeliveryStatus.IN_FLIGHT.value,
                claimed_by=worker_id,
                lease_expires_at=lease_until,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            claimed_ids.append(item_id)
    db.commit()

    if not claimed_ids:
        return []
    return list(
        db.scalars(
            select(QueuedDelivery)
            .where(QueuedDelivery.id.in_(claimed_ids))
            .order_by(QueuedDelivery.scheduled_at)
            .execution_options(populate_existing=True)
        ).all()
    )


async def _send_one(sender: EmailSender, email: _OutgoingEmail, timeout: float) -> str | None:
    """Send one email. Returns None on success, else the failure reason."""
    if not email.to_email:
        return "Recipient has no email address"
    try:
        await asyncio.wait_for(
            sender.send(
                to_email=email.to_email,
                subject=email.subject,
                html=email.html,
                text=email.text,
                idempotency_key=f"delivery:{email.queue_id}",
            ),
            timeout=timeout,
        )
        return None
    except asyncio.TimeoutError:
        return f"Send timed out after {timeout:g}s"
    except DeliveryFailure as exc:
        return exc.message
    except Exception as exc:
        logger.exception(
            "Unexpected email sender error",
            extra=build_log_context(user_id=email.user_id, queue_id=str(email.queue_id)),
        )
        return f"Unexpected send error: {exc.__class__.__name__}"


def _record_outcome(
    db: Session,
    queue_id: UUID,
    worker_id: str,
    error: str | None,
    summary: ProcessSummary,
) -> None:
    log_context = build_log_context(queue_id=str(queue_id), worker_id=worker_id)
    item = db.get(QueuedDelivery, queue_id, populate_existing=True)
    if item is None:
        summary.skipped += 1
        return

    status = DeliveryStatus(item.status)

    if error is None:
        # A completed send wins over a concurrent cancel
        if status in (DeliveryStatus.SENT, DeliveryStatus.FAILED):
            summary.skipped += 1
            return
        item.status = DeliveryStatus.SENT.value
        item.sent_at = utcnow()
        item.failure_reason = None
        item.claimed_by = None
        item.lease_expires_at = None
        db.commit()
        summary.sent += 1
        logger.info("Delivery sent", extra=log_context)
        return

    if status == DeliveryStatus.CANCELLED:
        summary.cancelled += 1
        logger.info("Delivery cancelled while in flight: %s", error, extra=log_context)
        return

    if status != DeliveryStatus.IN_FLIGHT or item.claimed_by != worker_id:
        # Lease expired and another worker owns the item now
        summary.skipped += 1
        logger.warning("Delivery no longer leased by this worker", extra=log_context)
        return

    item.retry_count += 1
    item.failure_reason = error
    item.claimed_by = None
    item.lease_expires_at = None
    if item.retry_count >= item.max_retries:
        item.status = DeliveryStatus.FAILED.value
        summary.failed += 1
        logger.error(
            "Delivery failed permanently after %s attempts: %s",
            item.retry_count,
            error,
            extra=log_context,
        )
    else:
        item.status = DeliveryStatus.PENDING.value
        item.scheduled_at = utcnow()
        summary.retried += 1
        logger.warning(
            "Delivery attempt %s/%s failed: %s",
            item.retry_count,
            item.max_retries,
            error,
            extra=log_context,
        )
    db.commit()


async def process_pending_queue(
    db: Session,
    sender: EmailSender,
    worker_id: str,
    batch_size: int | None = None,
    send_timeout: float | None = None,
) -> ProcessSummary:
    """
    Claim one batch, send concurrently, then record each outcome.

    Timeouts count as transient failures. Bookkeeping is per item: one
    item's failure never affects the others.
    """
    timeout = send_timeout or settings.DELIVERY_SEND_TIMEOUT_SECONDS
    items = claim_pending_deliveries(db, worker_id, batch_size)
    summary = ProcessSummary(claimed=len(items))
    if not items:
        return summary

    recipients = {
        account.id: account.email
        for account in db.scalars(
            select(Account).where(Account.id.in_(sorted({item.user_id for item in items})))
        )
    }
    outgoing = [
        _OutgoingEmail(
            queue_id=item.id,
            user_id=item.user_id,
            to_email=recipients.get(item.user_id),
            subject=item.email_subject or item.title,
            html=item.email_html or "",
            text=item.email_text or item.message,
        )
        for item in items
    ]
    # End the read transaction before awaiting network I/O
    db.commit()

    errors = await asyncio.gather(*(_send_one(sender, email, timeout) for email in outgoing))

    for email, error in zip(outgoing, errors):
        try:
            _record_outcome(db, email.queue_id, worker_id, error, summary)
        except SQLAlchemyError:
            db.rollback()
            summary.skipped += 1
            logger.exception(
                "Failed to record delivery outcome",
                extra=build_log_context(queue_id=str(email.queue_id), worker_id=worker_id),
            )

    return summary


# =============================================================================
# Administration / inspection
# =============================================================================


def get_delivery(db: Session, queue_id: UUID) -> QueuedDelivery:
    item = db.get(QueuedDelivery, queue_id)
    if not item:
        raise NotFoundError("Queued delivery not found")
    return item


def list_deliveries(
    db: Session,
    status: DeliveryStatus | None = None,
    user_id: str | None = None,
    limit: int = 50,
) -> list[QueuedDelivery]:
    """List queue items, newest first (e.g. permanently failed ones for alerting)."""
    query = db.query(QueuedDelivery)
    if status:
        query = query.filter(QueuedDelivery.status == DeliveryStatus(status).value)
    if user_id:
        query = query.filter(QueuedDelivery.user_id == user_id)
    return query.order_by(QueuedDelivery.created_at.desc()).limit(limit).all()


def cancel_delivery(db: Session, queue_id: UUID) -> QueuedDelivery:
    """
    Cancel a pending or in-flight delivery.

    Only prevents future attempts; a send already in progress that succeeds
    is still recorded as sent.
    """
    item = get_delivery(db, queue_id)
    if DeliveryStatus(item.status).is_final:
        raise AlreadyProcessedError(f"Delivery is already {item.status}")

    result = db.execute(
        update(QueuedDelivery)
        .where(
            QueuedDelivery.id == queue_id,
            QueuedDelivery.status.in_(
                [DeliveryStatus.PENDING.value, DeliveryStatus.IN_FLIGHT.value]
            ),
        )
        .values(status=DeliveryStatus.CANCELLED.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise AlreadyProcessedError("Delivery was completed before it could be cancelled")
    db.commit()
    db.refresh(item)

    logger.info("Delivery cancelled", extra=build_log_context(queue_id=str(queue_id)))
    return item
