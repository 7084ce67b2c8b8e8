"""Verification audit trail - append-only record of request transitions.

Security guidelines:
- NEVER store secrets (API keys, tokens, passwords)
- Hash emails in details (use hash_email)
- IP: Trust X-Forwarded-For only behind a configured proxy
"""

import hashlib
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from kindworld.core.config import settings
from kindworld.db.enums import AuditAction
from kindworld.db.models import VerificationAuditLog


def hash_email(email: str) -> str:
    """Hash email for audit/log output (prefix + SHA256 suffix for debugging)."""
    if not email:
        return ""
    prefix = email.split("@")[0][:3] if "@" in email else email[:3]
    suffix = hashlib.sha256(email.lower().encode()).hexdigest()[:12]
    return f"{prefix}...@[hash:{suffix}]"


def get_client_ip(request: Request | None) -> str | None:
    """
    Extract client IP from request.

    X-Forwarded-For is honoured only when TRUST_PROXY_HEADERS=True.
    """
    if not request:
        return None

    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # client, proxy1, proxy2 - take first
            return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None


def get_user_agent(request: Request | None) -> str | None:
    """Extract user agent from request."""
    if not request:
        return None
    ua = request.headers.get("user-agent", "")
    # Truncate to 500 chars (DB limit)
    return ua[:500] if ua else None


def append(
    db: Session,
    request_id: UUID,
    action: AuditAction,
    performed_by: str,
    details: dict[str, Any] | None = None,
    request: Request | None = None,
) -> VerificationAuditLog:
    """
    Append an audit entry inside the caller's transaction.

    Flushes but does not commit; the entry lands or rolls back together with
    the state change it describes.
    """
    entry = VerificationAuditLog(
        request_id=request_id,
        action=action.value,
        performed_by=performed_by,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.add(entry)
    db.flush()
    return entry


def recent_for_request(
    db: Session, request_id: UUID, limit: int | None = None
) -> list[VerificationAuditLog]:
    """Audit entries for one request, oldest first."""
    stmt = (
        select(VerificationAuditLog)
        .where(VerificationAuditLog.request_id == request_id)
        .order_by(VerificationAuditLog.performed_at.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def recent_global(db: Session, limit: int = 10) -> list[VerificationAuditLog]:
    """Most recent audit entries across all requests, newest first."""
    stmt = (
        select(VerificationAuditLog)
        .order_by(VerificationAuditLog.performed_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())
