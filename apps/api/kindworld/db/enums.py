"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Account roles.

    - USER: Volunteer account
    - COMPANY: Corporate sponsor
    - NGO: Organization that can request verification
    - ADMIN: Platform admin (reviews verification requests)
    """

    USER = "user"
    COMPANY = "company"
    NGO = "ngo"
    ADMIN = "admin"


class VerificationStatus(str, Enum):
    """Lifecycle of a verification request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not VerificationStatus.PENDING


class DocumentType(str, Enum):
    """Types of supporting documents attached to a verification request."""

    REGISTRATION = "registration"
    TAX_EXEMPT = "tax_exempt"
    MISSION_STATEMENT = "mission_statement"
    OTHER = "other"


class AuditAction(str, Enum):
    """Verification audit trail actions."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    DOCUMENTS_REQUESTED = "documents_requested"
    RESUBMITTED = "resubmitted"


class NotificationType(str, Enum):
    """Types of verification notifications."""

    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_REJECTED = "verification_rejected"
    VERIFICATION_PENDING = "verification_pending"
    VERIFICATION_DOCUMENTS_REQUIRED = "verification_documents_required"


class DeliveryStatus(str, Enum):
    """Status of queued email deliveries."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"  # Claimed by a worker, lease held
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        return self in (DeliveryStatus.SENT, DeliveryStatus.FAILED, DeliveryStatus.CANCELLED)


DEFAULT_VERIFICATION_STATUS = VerificationStatus.PENDING
DEFAULT_DELIVERY_STATUS = DeliveryStatus.PENDING
