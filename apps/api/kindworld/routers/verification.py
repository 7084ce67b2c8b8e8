"""
Verification Router - /verification-requests endpoints.

NGO submission, status lookup and admin review transitions.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from kindworld.core.deps import get_db
from kindworld.schemas.verification import (
    ApproveRequest,
    AuditEntryRead,
    RejectRequest,
    RequestDocumentsRequest,
    VerificationRequestRead,
    VerificationSubmit,
)
from kindworld.services import verification_service


router = APIRouter()


@router.post("", response_model=VerificationRequestRead, status_code=201)
def submit_verification_request(
    data: VerificationSubmit,
    request: Request,
    db: Session = Depends(get_db),
):
    """Submit a verification request for an NGO organization."""
    return verification_service.submit(
        db,
        org_id=data.organization_id,
        form_data=data.form,
        documents=data.documents,
        http_request=request,
    )


@router.get("/status/{organization_id}", response_model=VerificationRequestRead | None)
def get_verification_status(organization_id: str, db: Session = Depends(get_db)):
    """Latest verification request for an organization (null if none)."""
    return verification_service.get_status(db, organization_id)


@router.get("/{request_id}", response_model=VerificationRequestRead)
def get_verification_request(request_id: UUID, db: Session = Depends(get_db)):
    return verification_service.get_request(db, request_id)


@router.get("/{request_id}/audit", response_model=list[AuditEntryRead])
def get_verification_audit_trail(request_id: UUID, db: Session = Depends(get_db)):
    """Audit trail for one request, oldest first."""
    return verification_service.list_audit_trail(db, request_id)


@router.post("/{request_id}/approve", response_model=VerificationRequestRead)
def approve_verification_request(
    request_id: UUID,
    data: ApproveRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Approve a pending verification request (admin only)."""
    return verification_service.approve(
        db,
        request_id=request_id,
        admin_id=data.admin_id,
        notes=data.notes,
        http_request=request,
    )


@router.post("/{request_id}/reject", response_model=VerificationRequestRead)
def reject_verification_request(
    request_id: UUID,
    data: RejectRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Reject a pending verification request (admin only)."""
    return verification_service.reject(
        db,
        request_id=request_id,
        admin_id=data.admin_id,
        reason=data.reason,
        notes=data.notes,
        http_request=request,
    )


@router.post("/{request_id}/request-documents", response_model=VerificationRequestRead)
def request_additional_documents(
    request_id: UUID,
    data: RequestDocumentsRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Ask the organization for more documents; status stays pending."""
    return verification_service.request_additional_documents(
        db,
        request_id=request_id,
        admin_id=data.admin_id,
        required_document_names=data.required_documents,
        notes=data.notes,
        http_request=request,
    )
