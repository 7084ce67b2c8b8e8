"""
Notifications Router - /users/{user_id}/notifications endpoints.

Notification feed, read status, preferences and the live websocket feed.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from kindworld.core.config import settings
from kindworld.core.deps import get_db
from kindworld.core.websocket import ConnectionManager
from kindworld.db.session import SessionLocal
from kindworld.schemas.notification import (
    NotificationCountRead,
    NotificationRead,
    PreferencesRead,
    PreferencesUpdate,
    PreferencesUpdateRequest,
)
from kindworld.services import notification_service, preference_service


router = APIRouter()


def load_feed_snapshot(user_id: str) -> dict:
    """Same query as the REST feed, serialized for the websocket."""
    with SessionLocal() as db:
        notifications = notification_service.get_notifications(db, user_id)
        unread_count = notification_service.get_unread_count(db, user_id)
        return {
            "type": "notifications",
            "data": {
                "items": [
                    NotificationRead.model_validate(n).model_dump(mode="json")
                    for n in notifications
                ],
                "unread_count": unread_count,
            },
        }


live_feed = ConnectionManager(load_feed_snapshot, poll_seconds=settings.LIVE_FEED_POLL_SECONDS)


@router.get("/{user_id}/notifications", response_model=list[NotificationRead])
def list_notifications(
    user_id: str,
    unread_only: bool = Query(False),
    limit: int = Query(notification_service.DEFAULT_FEED_LIMIT, ge=1),
    db: Session = Depends(get_db),
):
    """Get user's notifications, newest first (at most 50)."""
    return notification_service.get_notifications(
        db, user_id=user_id, limit=limit, unread_only=unread_only
    )


@router.get("/{user_id}/notifications/count", response_model=NotificationCountRead)
def get_unread_count(user_id: str, db: Session = Depends(get_db)):
    """Get unread notification count (for polling)."""
    return NotificationCountRead(
        unread_count=notification_service.get_unread_count(db, user_id)
    )


@router.patch("/{user_id}/notifications/{notification_id}/read", response_model=NotificationRead)
def mark_notification_read(
    user_id: str,
    notification_id: UUID,
    db: Session = Depends(get_db),
):
    """Mark a notification as read."""
    return notification_service.mark_read(db, notification_id=notification_id, user_id=user_id)


@router.post("/{user_id}/notifications/read-all")
def mark_all_read(user_id: str, db: Session = Depends(get_db)):
    """Mark all notifications as read."""
    count = notification_service.mark_all_read(db, user_id)
    return {"marked_read": count}


@router.get("/{user_id}/notification-preferences", response_model=PreferencesRead)
def get_notification_preferences(user_id: str, db: Session = Depends(get_db)):
    """Get user's notification preferences (defaults all on)."""
    return preference_service.get_preferences(db, user_id)


@router.patch("/{user_id}/notification-preferences", response_model=PreferencesRead)
def update_notification_preferences(
    user_id: str,
    data: PreferencesUpdateRequest,
    db: Session = Depends(get_db),
):
    """Update user's notification preferences (owner only)."""
    updates = PreferencesUpdate.model_validate(
        data.model_dump(exclude_unset=True, exclude={"actor_id"})
    )
    return preference_service.update_preferences(
        db, user_id=user_id, actor_id=data.actor_id, updates=updates
    )


@router.websocket("/{user_id}/notifications/live")
async def notifications_live(websocket: WebSocket, user_id: str):
    """
    Live notification feed.

    Pushes ``{"type": "notifications", "data": {...}}`` whenever the feed
    changes. Clients may send "ping" to receive "pong".
    """
    await live_feed.connect(websocket, user_id)
    try:
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        await live_feed.disconnect(websocket, user_id)
