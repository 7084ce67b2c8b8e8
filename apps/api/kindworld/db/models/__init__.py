"""SQLAlchemy ORM models."""

from kindworld.db.models.accounts import Account
from kindworld.db.models.audit import VerificationAuditLog
from kindworld.db.models.deliveries import QueuedDelivery
from kindworld.db.models.notifications import Notification, NotificationPreferences
from kindworld.db.models.verification import VerificationDocument, VerificationRequest

__all__ = [
    "Account",
    "Notification",
    "NotificationPreferences",
    "QueuedDelivery",
    "VerificationAuditLog",
    "VerificationDocument",
    "VerificationRequest",
]
