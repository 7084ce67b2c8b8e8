"""Pydantic schemas for in-app notifications and preferences."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from kindworld.db.enums import NotificationType


class NotificationRead(BaseModel):
    id: UUID
    user_id: str
    type: NotificationType
    title: str
    message: str
    read: bool
    read_at: datetime | None
    created_at: datetime
    verification_request_id: UUID | None
    metadata: dict | None = Field(None, validation_alias="metadata_")

    model_config = {"from_attributes": True}


class NotificationCountRead(BaseModel):
    unread_count: int


class PreferencesRead(BaseModel):
    email_notifications: bool = True
    in_app_notifications: bool = True
    verification_updates: bool = True
    system_announcements: bool = True


class PreferencesUpdate(BaseModel):
    """Partial preference update; only fields that are set are applied."""
    email_notifications: bool | None = None
    in_app_notifications: bool | None = None
    verification_updates: bool | None = None
    system_announcements: bool | None = None

    model_config = {"extra": "forbid"}


class PreferencesUpdateRequest(PreferencesUpdate):
    actor_id: str = Field(..., min_length=1)
