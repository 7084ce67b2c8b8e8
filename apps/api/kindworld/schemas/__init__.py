"""Pydantic schemas for API request/response models."""

from kindworld.schemas.notification import (
    NotificationCountRead,
    NotificationRead,
    PreferencesRead,
    PreferencesUpdate,
    PreferencesUpdateRequest,
)
from kindworld.schemas.verification import (
    AddressData,
    ApproveRequest,
    AuditEntryRead,
    DeliveryRead,
    DocumentData,
    DocumentRead,
    RejectRequest,
    RequestDocumentsRequest,
    VerificationFormData,
    VerificationRequestRead,
    VerificationStatsRead,
    VerificationSubmit,
)

__all__ = [
    "AddressData",
    "ApproveRequest",
    "AuditEntryRead",
    "DeliveryRead",
    "DocumentData",
    "DocumentRead",
    "NotificationCountRead",
    "NotificationRead",
    "PreferencesRead",
    "PreferencesUpdate",
    "PreferencesUpdateRequest",
    "RejectRequest",
    "RequestDocumentsRequest",
    "VerificationFormData",
    "VerificationRequestRead",
    "VerificationStatsRead",
    "VerificationSubmit",
]
