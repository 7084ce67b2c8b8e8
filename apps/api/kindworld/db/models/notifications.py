"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from kindworld.db.base import Base
from kindworld.db.types import utcnow


class Notification(Base):
    """
    In-app notifications for users.

    History is permanent: rows are only ever toggled read, never deleted.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_user_unread", "user_id", "read", "created_at"),
        Index("idx_notif_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Notification type (enum)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Linked verification request (for click-through)
    verification_request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column(
        "metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True
    )

    # Read status
    read: Mapped[bool] = mapped_column(default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class NotificationPreferences(Base):
    """
    Per-user notification preferences.

    Missing row = all defaults ON.
    """

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # Channels
    email_notifications: Mapped[bool] = mapped_column(default=True, nullable=False)
    in_app_notifications: Mapped[bool] = mapped_column(default=True, nullable=False)

    # Categories
    verification_updates: Mapped[bool] = mapped_column(default=True, nullable=False)
    system_announcements: Mapped[bool] = mapped_column(default=True, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)
