"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kindworld.db.base import Base
from kindworld.db.enums import DEFAULT_VERIFICATION_STATUS
from kindworld.db.types import utcnow


class VerificationRequest(Base):
    """
    NGO verification request reviewed by platform admins.

    Invariants (enforced by verification_service):
    - reviewed_at / reviewed_by set iff status != pending
    - rejection_reason set iff status == rejected
    """

    __tablename__ = "verification_requests"
    __table_args__ = (
        Index("idx_verification_requests_org_submitted", "organization_id", "submitted_at"),
        Index("idx_verification_requests_status", "status", "submitted_at"),
        # At most one active request per organization
        Index(
            "uq_verification_requests_active_org",
            "organization_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )

    # Organization profile
    organization_name: Mapped[str] = mapped_column(String(255), nullable=False)
    organization_type: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Postal address
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)

    mission_statement: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_VERIFICATION_STATUS.value, nullable=False
    )
    submitted_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Review tracking
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    documents: Mapped[list["VerificationDocument"]] = relationship(
        back_populates="request",
        order_by="VerificationDocument.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def address(self) -> dict[str, str]:
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "country": self.country,
        }


class VerificationDocument(Base):
    """Supporting document attached to a verification request (immutable)."""

    __tablename__ = "verification_documents"
    __table_args__ = (Index("idx_verification_documents_request", "request_id", "position"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("verification_requests.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    type: Mapped[str] = mapped_column(String(30), nullable=False)  # DocumentType
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(Text, nullable=False)  # Opaque storage locator
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    request: Mapped["VerificationRequest"] = relationship(back_populates="documents")
