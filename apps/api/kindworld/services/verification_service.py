"""NGO verification workflow - submission, review transitions, audit.

Every mutation validates fully before writing, then writes the request state,
the organization's visible status and one audit entry in a single
transaction. Notifications are enqueued after commit and never fail the call.
"""

import logging
import re
from uuid import UUID

from fastapi import Request
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from kindworld.core.config import settings
from kindworld.core.structured_logging import build_log_context
from kindworld.db.enums import AuditAction, NotificationType, Role, VerificationStatus
from kindworld.db.models import (
    Account,
    VerificationAuditLog,
    VerificationDocument,
    VerificationRequest,
)
from kindworld.db.types import utcnow
from kindworld.schemas.verification import DocumentData, VerificationFormData
from kindworld.services import audit_service, delivery_service
from kindworld.services.errors import (
    ActorRequiredError,
    AlreadyPendingError,
    AlreadyProcessedError,
    DeliveryFailure,
    InvalidInputError,
    NoDocumentsError,
    NotFoundError,
    PersistenceError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_MISSION_STATEMENT_LENGTH = 50

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


# =============================================================================
# Validation
# =============================================================================


def _clean(value: str | None) -> str:
    return (value or "").strip()


def validate_form(form: VerificationFormData) -> None:
    """Raise InvalidInputError listing every problem with the form."""
    problems = []
    if not _clean(form.organization_name):
        problems.append("organization name is required")
    if not _clean(form.organization_type):
        problems.append("organization type is required")
    if not EMAIL_PATTERN.match(_clean(form.contact_email)):
        problems.append("a valid contact email is required")
    for field_name in ADDRESS_FIELDS:
        if not _clean(getattr(form.address, field_name)):
            problems.append(f"address {field_name.replace('_', ' ')} is required")
    if len(_clean(form.mission_statement)) < MIN_MISSION_STATEMENT_LENGTH:
        problems.append(
            f"mission statement must be at least {MIN_MISSION_STATEMENT_LENGTH} characters"
        )
    if problems:
        raise InvalidInputError("Invalid verification form: " + "; ".join(problems))


def validate_documents(documents: list[DocumentData]) -> None:
    if not documents:
        raise NoDocumentsError("At least one supporting document is required")
    for index, doc in enumerate(documents):
        if not _clean(doc.file_name):
            raise InvalidInputError(f"Document {index + 1}: file name is required")
        if not _clean(doc.file_url):
            raise InvalidInputError(f"Document {index + 1}: file locator is required")
        if doc.file_size < 0:
            raise InvalidInputError(f"Document {index + 1}: file size must not be negative")


def _require_actor(admin_id: str | None) -> str:
    if not admin_id or not admin_id.strip():
        raise ActorRequiredError("Admin id is required")
    return admin_id.strip()


def _require_admin(db: Session, admin_id: str) -> Account:
    admin = db.get(Account, admin_id)
    if not admin or admin.role != Role.ADMIN.value:
        raise UnauthorizedError("Only admins can review verification requests")
    return admin


def _require_organization(db: Session, org_id: str) -> Account:
    org = db.get(Account, org_id)
    if not org:
        raise NotFoundError("Organization not found")
    return org


def _links() -> dict[str, str]:
    base = settings.frontend_base_url
    return {
        "statusUrl": f"{base}/verification-status",
        "dashboardUrl": f"{base}/ngo-dashboard",
        "verificationUrl": f"{base}/verification-request",
    }


# =============================================================================
# Reads
# =============================================================================


def get_request(db: Session, request_id: UUID) -> VerificationRequest:
    """Get a verification request by ID."""
    vr = db.get(VerificationRequest, request_id)
    if not vr:
        raise NotFoundError("Verification request not found")
    return vr


def get_status(db: Session, org_id: str) -> VerificationRequest | None:
    """Latest verification request for an organization (by submission time)."""
    return (
        db.query(VerificationRequest)
        .filter(VerificationRequest.organization_id == org_id)
        .order_by(VerificationRequest.submitted_at.desc())
        .first()
    )


def list_audit_trail(db: Session, request_id: UUID) -> list[VerificationAuditLog]:
    """Audit entries for one request, oldest first."""
    get_request(db, request_id)
    return audit_service.recent_for_request(db, request_id)


# =============================================================================
# Submission
# =============================================================================


def _has_pending_request(db: Session, org_id: str) -> bool:
    return (
        db.query(VerificationRequest.id)
        .filter(
            VerificationRequest.organization_id == org_id,
            VerificationRequest.status == VerificationStatus.PENDING.value,
        )
        .first()
        is not None
    )


def submit(
    db: Session,
    org_id: str,
    form_data: VerificationFormData,
    documents: list[DocumentData],
    http_request: Request | None = None,
) -> VerificationRequest:
    """
    Submit a verification request for an NGO organization.

    Raises:
        InvalidInputError / NoDocumentsError: form or documents invalid
        NotFoundError: organization account unknown
        UnauthorizedError: account is not an NGO
        AlreadyPendingError: organization already has a pending request
        PersistenceError: storage failure (nothing written)
    """
    validate_form(form_data)
    validate_documents(documents)

    org = _require_organization(db, org_id)
    if org.role != Role.NGO.value:
        raise UnauthorizedError("Only NGO accounts can request verification")

    if _has_pending_request(db, org_id):
        raise AlreadyPendingError("Organization already has a pending verification request")

    has_history = (
        db.query(VerificationRequest.id)
        .filter(VerificationRequest.organization_id == org_id)
        .first()
        is not None
    )
    action = AuditAction.RESUBMITTED if has_history else AuditAction.SUBMITTED
    previous_status = org.verification_status

    try:
        vr = VerificationRequest(
            organization_id=org_id,
            organization_name=_clean(form_data.organization_name),
            organization_type=_clean(form_data.organization_type),
            contact_email=_clean(form_data.contact_email),
            contact_phone=_clean(form_data.contact_phone) or None,
            website=_clean(form_data.website) or None,
            street=_clean(form_data.address.street),
            city=_clean(form_data.address.city),
            state=_clean(form_data.address.state),
            zip_code=_clean(form_data.address.zip_code),
            country=_clean(form_data.address.country),
            mission_statement=_clean(form_data.mission_statement),
            status=VerificationStatus.PENDING.value,
            submitted_at=utcnow(),
        )
        vr.documents = [
            VerificationDocument(
                position=position,
                type=doc.type.value,
                file_name=_clean(doc.file_name),
                file_url=_clean(doc.file_url),
                file_size=doc.file_size,
                mime_type=doc.mime_type,
                description=doc.description,
            )
            for position, doc in enumerate(documents)
        ]
        db.add(vr)
        db.flush()

        org.verification_status = VerificationStatus.PENDING.value
        org.verification_request_id = vr.id

        audit_service.append(
            db,
            request_id=vr.id,
            action=action,
            performed_by=org_id,
            details={
                "previous_status": previous_status,
                "new_status": VerificationStatus.PENDING.value,
                "organization_name": vr.organization_name,
                "contact_email": audit_service.hash_email(vr.contact_email),
                "document_count": len(documents),
            },
            request=http_request,
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # Lost a race against a concurrent submission (partial unique index)
        if _has_pending_request(db, org_id):
            raise AlreadyPendingError(
                "Organization already has a pending verification request"
            ) from exc
        logger.exception(
            "Verification submission violated a constraint",
            extra=build_log_context(user_id=org_id),
        )
        raise PersistenceError("Could not store verification request") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Verification submission failed", extra=build_log_context(user_id=org_id)
        )
        raise PersistenceError("Could not store verification request") from exc

    db.refresh(vr)
    logger.info(
        "Verification request %s",
        action.value,
        extra=build_log_context(user_id=org_id, request_id=str(vr.id)),
    )

    _notify_submitted(db, vr)
    return vr


def _notify_submitted(db: Session, vr: VerificationRequest) -> None:
    links = _links()
    try:
        delivery_service.enqueue(
            db,
            user_id=vr.organization_id,
            type=NotificationType.VERIFICATION_PENDING,
            title="Verification Request Submitted",
            message=(
                f"Your verification request for {vr.organization_name} "
                "has been submitted and is under review."
            ),
            template_data={
                "organizationName": vr.organization_name,
                "statusUrl": links["statusUrl"],
                "dashboardUrl": links["dashboardUrl"],
            },
            related_request_id=vr.id,
        )
    except Exception:
        db.rollback()
        logger.exception(
            "Submitter notification failed",
            extra=build_log_context(user_id=vr.organization_id, request_id=str(vr.id)),
        )

    admin_url = f"{settings.frontend_base_url}/admin/verification/{vr.id}"
    try:
        delivery_service.notify_admins(
            db,
            type=NotificationType.VERIFICATION_PENDING,
            title="New NGO Verification Request",
            message=f"{vr.organization_name} has submitted a verification request for review.",
            template_data={
                "organizationName": vr.organization_name,
                "adminUrl": admin_url,
                "statusUrl": admin_url,
            },
            related_request_id=vr.id,
        )
    except DeliveryFailure as exc:
        logger.warning(
            "Admin notification skipped: %s",
            exc.message,
            extra=build_log_context(request_id=str(vr.id)),
        )
    except Exception:
        db.rollback()
        logger.exception(
            "Admin notification failed", extra=build_log_context(request_id=str(vr.id))
        )


# =============================================================================
# Review transitions
# =============================================================================


def _record_failed_attempt(
    db: Session,
    request_id: UUID,
    action: AuditAction,
    admin_id: str,
    error: Exception,
    http_request: Request | None,
) -> None:
    """Best-effort audit entry for a transition that failed in storage."""
    try:
        audit_service.append(
            db,
            request_id=request_id,
            action=action,
            performed_by=admin_id,
            details={"failed": True, "error": error.__class__.__name__},
            request=http_request,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Could not record failed %s attempt",
            action.value,
            extra=build_log_context(user_id=admin_id, request_id=str(request_id)),
        )


def _apply_review(
    db: Session,
    vr: VerificationRequest,
    org: Account,
    admin_id: str,
    new_status: VerificationStatus,
    action: AuditAction,
    rejection_reason: str | None,
    notes: str | None,
    http_request: Request | None,
) -> VerificationRequest:
    """Compare-and-swap pending -> new_status, org status and audit in one transaction."""
    request_id = vr.id
    now = utcnow()
    values = {
        "status": new_status.value,
        "reviewed_at": now,
        "reviewed_by": admin_id,
        "rejection_reason": rejection_reason,
        "updated_at": now,
    }
    if notes is not None:
        values["admin_notes"] = notes

    try:
        result = db.execute(
            update(VerificationRequest)
            .where(
                VerificationRequest.id == request_id,
                VerificationRequest.status == VerificationStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise AlreadyProcessedError("Verification request has already been processed")

        org.verification_status = new_status.value
        org.verification_request_id = request_id

        details = {
            "previous_status": VerificationStatus.PENDING.value,
            "new_status": new_status.value,
            "organization_name": vr.organization_name,
        }
        if rejection_reason:
            details["reason"] = rejection_reason
        if notes:
            details["notes"] = notes
        audit_service.append(
            db,
            request_id=request_id,
            action=action,
            performed_by=admin_id,
            details=details,
            request=http_request,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Verification %s failed",
            action.value,
            extra=build_log_context(user_id=admin_id, request_id=str(request_id)),
        )
        _record_failed_attempt(db, request_id, action, admin_id, exc, http_request)
        raise PersistenceError("Could not update verification request") from exc

    db.refresh(vr)
    logger.info(
        "Verification request %s",
        new_status.value,
        extra=build_log_context(user_id=admin_id, request_id=str(request_id)),
    )
    return vr


def _load_reviewable(
    db: Session, request_id: UUID, admin_id: str
) -> tuple[VerificationRequest, Account]:
    vr = get_request(db, request_id)
    if VerificationStatus(vr.status).is_terminal:
        raise AlreadyProcessedError(
            f"Verification request is already {VerificationStatus(vr.status).value}"
        )
    _require_admin(db, admin_id)
    org = _require_organization(db, vr.organization_id)
    return vr, org


def _notify_safely(db: Session, vr: VerificationRequest, **kwargs) -> None:
    try:
        delivery_service.enqueue(db, user_id=vr.organization_id, related_request_id=vr.id, **kwargs)
    except Exception:
        db.rollback()
        logger.exception(
            "Outcome notification failed",
            extra=build_log_context(user_id=vr.organization_id, request_id=str(vr.id)),
        )


def approve(
    db: Session,
    request_id: UUID,
    admin_id: str,
    notes: str | None = None,
    http_request: Request | None = None,
) -> VerificationRequest:
    """Approve a pending verification request."""
    admin_id = _require_actor(admin_id)
    vr, org = _load_reviewable(db, request_id, admin_id)

    vr = _apply_review(
        db,
        vr,
        org,
        admin_id=admin_id,
        new_status=VerificationStatus.APPROVED,
        action=AuditAction.APPROVED,
        rejection_reason=None,
        notes=notes,
        http_request=http_request,
    )

    links = _links()
    _notify_safely(
        db,
        vr,
        type=NotificationType.VERIFICATION_APPROVED,
        title="Verification Approved - Welcome to KindWorld!",
        message=(
            f"Congratulations! Your organization {vr.organization_name} has been verified "
            "and you now have full access to the platform."
        ),
        template_data={
            "organizationName": vr.organization_name,
            "dashboardUrl": links["dashboardUrl"],
            "verificationUrl": links["statusUrl"],
        },
    )
    return vr


def reject(
    db: Session,
    request_id: UUID,
    admin_id: str,
    reason: str,
    notes: str | None = None,
    http_request: Request | None = None,
) -> VerificationRequest:
    """Reject a pending verification request with a reason."""
    admin_id = _require_actor(admin_id)
    reason = _clean(reason)
    if not reason:
        raise InvalidInputError("Rejection reason is required")
    vr, org = _load_reviewable(db, request_id, admin_id)

    vr = _apply_review(
        db,
        vr,
        org,
        admin_id=admin_id,
        new_status=VerificationStatus.REJECTED,
        action=AuditAction.REJECTED,
        rejection_reason=reason,
        notes=notes,
        http_request=http_request,
    )

    links = _links()
    _notify_safely(
        db,
        vr,
        type=NotificationType.VERIFICATION_REJECTED,
        title="Verification Request Update Required",
        message=(
            f"Your verification request for {vr.organization_name} "
            "requires additional information before approval."
        ),
        template_data={
            "organizationName": vr.organization_name,
            "rejectionReason": reason,
            "verificationUrl": links["verificationUrl"],
            "statusUrl": links["statusUrl"],
        },
    )
    return vr


def request_additional_documents(
    db: Session,
    request_id: UUID,
    admin_id: str,
    required_document_names: list[str],
    notes: str | None = None,
    http_request: Request | None = None,
) -> VerificationRequest:
    """
    Ask the organization for more documents. Status stays pending.

    Repeatable while the request is pending.
    """
    admin_id = _require_actor(admin_id)
    names = [_clean(name) for name in required_document_names or [] if _clean(name)]
    if not names:
        raise InvalidInputError("At least one required document must be named")
    vr, _org = _load_reviewable(db, request_id, admin_id)
    request_id = vr.id

    values = {"updated_at": utcnow()}
    if notes is not None:
        values["admin_notes"] = notes

    try:
        result = db.execute(
            update(VerificationRequest)
            .where(
                VerificationRequest.id == request_id,
                VerificationRequest.status == VerificationStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise AlreadyProcessedError("Verification request has already been processed")

        details = {"required_documents": names}
        if notes:
            details["notes"] = notes
        audit_service.append(
            db,
            request_id=request_id,
            action=AuditAction.DOCUMENTS_REQUESTED,
            performed_by=admin_id,
            details=details,
            request=http_request,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        _record_failed_attempt(
            db, request_id, AuditAction.DOCUMENTS_REQUESTED, admin_id, exc, http_request
        )
        logger.exception(
            "Document request failed",
            extra=build_log_context(user_id=admin_id, request_id=str(request_id)),
        )
        raise PersistenceError("Could not record document request") from exc

    db.refresh(vr)

    links = _links()
    _notify_safely(
        db,
        vr,
        type=NotificationType.VERIFICATION_DOCUMENTS_REQUIRED,
        title="Additional Documents Required",
        message=(
            "Additional documents are required to complete your verification "
            f"for {vr.organization_name}."
        ),
        template_data={
            "organizationName": vr.organization_name,
            "requiredDocuments": ", ".join(names),
            "uploadUrl": links["verificationUrl"],
            "statusUrl": links["statusUrl"],
        },
        metadata={"required_documents": names},
    )
    return vr
