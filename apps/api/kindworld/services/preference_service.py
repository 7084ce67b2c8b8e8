"""Notification preference service - per-user channel opt-in/opt-out."""

import logging

from sqlalchemy.orm import Session

from kindworld.core.structured_logging import build_log_context
from kindworld.db.models import NotificationPreferences
from kindworld.schemas.notification import PreferencesRead, PreferencesUpdate
from kindworld.services.errors import InvalidInputError, UnauthorizedError

logger = logging.getLogger(__name__)


def _to_read(prefs: NotificationPreferences) -> PreferencesRead:
    return PreferencesRead(
        email_notifications=prefs.email_notifications,
        in_app_notifications=prefs.in_app_notifications,
        verification_updates=prefs.verification_updates,
        system_announcements=prefs.system_announcements,
    )


def get_preferences(db: Session, user_id: str) -> PreferencesRead:
    """
    Get user notification preferences.

    Returns defaults (all ON) if no row exists.
    """
    prefs = db.get(NotificationPreferences, user_id)
    if prefs:
        return _to_read(prefs)
    return PreferencesRead()


def update_preferences(
    db: Session,
    user_id: str,
    actor_id: str,
    updates: PreferencesUpdate,
) -> PreferencesRead:
    """
    Update user notification preferences.

    Only the owning user may change them. Creates the row if it doesn't exist;
    fields not set on ``updates`` keep their current value.
    """
    if not actor_id or actor_id != user_id:
        raise UnauthorizedError("Only the owning user can change notification preferences")

    changes = updates.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None:
            raise InvalidInputError(f"Preference '{key}' must be true or false")

    prefs = db.get(NotificationPreferences, user_id)
    if not prefs:
        prefs = NotificationPreferences(
            user_id=user_id,
            email_notifications=True,
            in_app_notifications=True,
            verification_updates=True,
            system_announcements=True,
        )
        db.add(prefs)

    for key, value in changes.items():
        setattr(prefs, key, value)

    db.commit()
    db.refresh(prefs)

    logger.info(
        "Notification preferences updated: %s",
        sorted(changes),
        extra=build_log_context(user_id=user_id),
    )
    return _to_read(prefs)
