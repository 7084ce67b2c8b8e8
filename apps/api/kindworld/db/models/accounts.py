"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from kindworld.db.base import Base
from kindworld.db.types import utcnow


class Account(Base):
    """
    Platform account as seen by the verification core.

    Identity lives in the external auth layer; ids are opaque strings.
    NGO accounts double as the organization that owns verification requests.
    """

    __tablename__ = "accounts"
    __table_args__ = (Index("idx_accounts_role", "role"),)

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[str] = mapped_column(String(20), nullable=False)  # Role
    organization_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Externally-visible verification state (None until first submission)
    verification_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    verification_request_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)
