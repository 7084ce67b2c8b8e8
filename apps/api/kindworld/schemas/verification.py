"""Pydantic schemas for NGO verification requests.

Input schemas only check shapes; field rules (required values, email format,
mission statement length) are enforced by verification_service so that API
and CLI callers get the same errors.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from kindworld.db.enums import AuditAction, DeliveryStatus, DocumentType, VerificationStatus


class AddressData(BaseModel):
    """Postal address of the organization."""
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class VerificationFormData(BaseModel):
    """Organization profile submitted for verification."""
    organization_name: str = ""
    organization_type: str = ""
    contact_email: str = ""
    contact_phone: str | None = None
    website: str | None = None
    address: AddressData = Field(default_factory=AddressData)
    mission_statement: str = ""


class DocumentData(BaseModel):
    """Reference to an already-uploaded supporting document."""
    type: DocumentType
    file_name: str
    file_url: str
    file_size: int = 0
    mime_type: str = "application/octet-stream"
    description: str | None = None


class VerificationSubmit(BaseModel):
    """Request to submit a verification request."""
    organization_id: str = Field(..., min_length=1, max_length=128)
    form: VerificationFormData
    documents: list[DocumentData] = Field(default_factory=list)


class ApproveRequest(BaseModel):
    admin_id: str = ""
    notes: str | None = None


class RejectRequest(BaseModel):
    admin_id: str = ""
    reason: str = ""
    notes: str | None = None


class RequestDocumentsRequest(BaseModel):
    admin_id: str = ""
    required_documents: list[str] = Field(default_factory=list)
    notes: str | None = None


class DocumentRead(BaseModel):
    id: UUID
    type: DocumentType
    file_name: str
    file_url: str
    file_size: int
    mime_type: str
    uploaded_at: datetime
    description: str | None

    model_config = {"from_attributes": True}


class VerificationRequestRead(BaseModel):
    """Full verification request response."""
    id: UUID
    organization_id: str
    organization_name: str
    organization_type: str
    contact_email: str
    contact_phone: str | None
    website: str | None
    address: AddressData
    mission_statement: str
    documents: list[DocumentRead]

    status: VerificationStatus
    submitted_at: datetime
    reviewed_at: datetime | None
    reviewed_by: str | None
    rejection_reason: str | None
    admin_notes: str | None

    model_config = {"from_attributes": True}


class AuditEntryRead(BaseModel):
    id: UUID
    request_id: UUID
    action: AuditAction
    performed_by: str
    performed_at: datetime
    details: dict | None
    ip_address: str | None
    user_agent: str | None

    model_config = {"from_attributes": True}


class VerificationStatsRead(BaseModel):
    """Aggregate review statistics for the admin dashboard."""
    pending_count: int
    approved_count: int
    rejected_count: int
    average_processing_days: int
    recent_activity: list[AuditEntryRead]


class DeliveryRead(BaseModel):
    """Queued email delivery (admin inspection)."""
    id: UUID
    user_id: str
    type: str
    title: str
    status: DeliveryStatus
    retry_count: int
    max_retries: int
    scheduled_at: datetime
    sent_at: datetime | None
    failure_reason: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
