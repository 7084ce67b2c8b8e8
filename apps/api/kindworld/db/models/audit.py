"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from kindworld.db.base import Base
from kindworld.db.types import utcnow


class VerificationAuditLog(Base):
    """
    Append-only audit trail for verification transitions.

    Security:
    - Never stores secrets/tokens
    - Emails in details are hashed
    - IP captured from X-Forwarded-For or client IP
    """

    __tablename__ = "verification_audit_logs"
    __table_args__ = (
        Index("idx_verification_audit_request", "request_id", "performed_at"),
        Index("idx_verification_audit_performed", "performed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # No FK: entries outlive the request row and may reference unknown ids
    request_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)  # AuditAction
    performed_by: Mapped[str] = mapped_column(String(128), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    details: Mapped[dict | None] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=True
    )

    # Request metadata
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
