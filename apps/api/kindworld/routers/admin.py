"""
Admin Router - /admin endpoints.

Review queue listing, dashboard statistics and delivery queue inspection.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kindworld.core.deps import get_db
from kindworld.db.enums import DeliveryStatus, VerificationStatus
from kindworld.schemas.verification import (
    AuditEntryRead,
    DeliveryRead,
    VerificationRequestRead,
    VerificationStatsRead,
)
from kindworld.services import admin_query_service, delivery_service


router = APIRouter()


@router.get("/verification-requests", response_model=list[VerificationRequestRead])
def list_verification_requests(
    status: VerificationStatus | None = None,
    organization_type: str | None = None,
    search: str | None = Query(None, max_length=200),
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int | None = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """List verification requests, newest first."""
    filters = admin_query_service.VerificationFilters(
        status=status,
        organization_type=organization_type,
        search=search,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return admin_query_service.list_requests(db, filters)


@router.get("/verification-stats", response_model=VerificationStatsRead)
def get_verification_stats(db: Session = Depends(get_db)):
    """Counts per status, average processing days and recent activity."""
    stats = admin_query_service.get_stats(db)
    return VerificationStatsRead(
        pending_count=stats.pending_count,
        approved_count=stats.approved_count,
        rejected_count=stats.rejected_count,
        average_processing_days=stats.average_processing_days,
        recent_activity=[AuditEntryRead.model_validate(e) for e in stats.recent_activity],
    )


@router.get("/deliveries", response_model=list[DeliveryRead])
def list_deliveries(
    status: DeliveryStatus | None = None,
    user_id: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Inspect queued email deliveries (e.g. status=failed for alerting)."""
    return delivery_service.list_deliveries(db, status=status, user_id=user_id, limit=limit)


@router.post("/deliveries/{queue_id}/cancel", response_model=DeliveryRead)
def cancel_delivery(queue_id: UUID, db: Session = Depends(get_db)):
    """Cancel a pending or in-flight delivery."""
    return delivery_service.cancel_delivery(db, queue_id)
