"""Read-side admin queries over verification requests."""

import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from kindworld.db.enums import VerificationStatus
from kindworld.db.models import VerificationAuditLog, VerificationRequest
from kindworld.services import audit_service

RECENT_ACTIVITY_LIMIT = 10
SECONDS_PER_DAY = 86400


@dataclass
class VerificationFilters:
    """Optional filters for the admin list; set filters are ANDed."""

    status: VerificationStatus | None = None
    organization_type: str | None = None
    search: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None


@dataclass
class VerificationStats:
    pending_count: int
    approved_count: int
    rejected_count: int
    average_processing_days: int
    recent_activity: list[VerificationAuditLog]


def list_requests(db: Session, filters: VerificationFilters | None = None) -> list[VerificationRequest]:
    """List verification requests matching filters, newest submission first."""
    filters = filters or VerificationFilters()
    query = db.query(VerificationRequest)

    if filters.status:
        query = query.filter(
            VerificationRequest.status == VerificationStatus(filters.status).value
        )
    if filters.organization_type:
        query = query.filter(VerificationRequest.organization_type == filters.organization_type)

    search = (filters.search or "").strip().lower()
    if search:
        query = query.filter(
            or_(
                func.lower(VerificationRequest.organization_name).contains(search, autoescape=True),
                func.lower(VerificationRequest.contact_email).contains(search, autoescape=True),
            )
        )

    if filters.date_from:
        query = query.filter(VerificationRequest.submitted_at >= filters.date_from)
    if filters.date_to:
        query = query.filter(VerificationRequest.submitted_at <= filters.date_to)

    query = query.order_by(VerificationRequest.submitted_at.desc())
    if filters.limit:
        query = query.limit(filters.limit)
    return query.all()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_stats(db: Session) -> VerificationStats:
    """
    Counts per status, mean processing time and recent audit activity.

    Processing time is averaged over terminal requests that have both
    timestamps and rounded half-up to whole days (0 when none).
    """
    counts = dict(
        db.query(VerificationRequest.status, func.count(VerificationRequest.id))
        .group_by(VerificationRequest.status)
        .all()
    )

    reviewed = (
        db.query(VerificationRequest.submitted_at, VerificationRequest.reviewed_at)
        .filter(
            VerificationRequest.status.in_(
                [VerificationStatus.APPROVED.value, VerificationStatus.REJECTED.value]
            ),
            VerificationRequest.reviewed_at.is_not(None),
        )
        .all()
    )
    durations = [
        (reviewed_at - submitted_at).total_seconds()
        for submitted_at, reviewed_at in reviewed
        if submitted_at and reviewed_at
    ]
    average_days = (
        _round_half_up(sum(durations) / len(durations) / SECONDS_PER_DAY) if durations else 0
    )

    return VerificationStats(
        pending_count=counts.get(VerificationStatus.PENDING.value, 0),
        approved_count=counts.get(VerificationStatus.APPROVED.value, 0),
        rejected_count=counts.get(VerificationStatus.REJECTED.value, 0),
        average_processing_days=average_days,
        recent_activity=audit_service.recent_global(db, RECENT_ACTIVITY_LIMIT),
    )
