"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from kindworld.db.base import Base
from kindworld.db.enums import DEFAULT_DELIVERY_STATUS
from kindworld.db.types import utcnow


class QueuedDelivery(Base):
    """
    Rendered email waiting for (or done with) physical delivery.

    Worker claims items by moving pending -> in_flight with a lease, then
    records sent / pending (retry) / failed. Sent and failed rows are final.
    """

    __tablename__ = "notification_queue"
    __table_args__ = (
        Index("idx_notification_queue_due", "status", "scheduled_at"),
        Index("idx_notification_queue_user", "user_id", "scheduled_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)  # NotificationType

    # Rendered content (title = subject, message = text body)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    email_subject: Mapped[str | None] = mapped_column(String(500), nullable=True)
    email_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    email_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_DELIVERY_STATUS.value, nullable=False
    )
    scheduled_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    metadata_: Mapped[dict | None] = mapped_column(
        "metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True
    )

    # Lease (set while in_flight)
    claimed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    lease_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
