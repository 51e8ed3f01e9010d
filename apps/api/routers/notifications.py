"""
Notifications API Router

In-app notification inbox.
"""

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from core.dependencies import get_user_or_404
from core.exceptions import NotFoundError
from models import Notification, User
from schemas import NotificationListResponse, NotificationResponse
from services.notification_service import (
    format_relative_time,
    list_notifications,
    mark_all_as_read,
    mark_as_read,
    unread_count,
)

router = APIRouter(prefix="/v1/users/{user_id}/notifications", tags=["Notifications"])


def _to_response(notification: Notification, now: datetime) -> NotificationResponse:
    response = NotificationResponse.model_validate(notification)
    response.relative_time = format_relative_time(notification.timestamp, now)
    return response


@router.get("", response_model=NotificationListResponse)
def get_notifications(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
):
    now = datetime.now(timezone.utc)
    return NotificationListResponse(
        unread_count=unread_count(db, user.id),
        notifications=[
            _to_response(n, now)
            for n in list_notifications(db, user.id, unread_only=unread_only, limit=limit)
        ],
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    notification_id: UUID,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    notification = mark_as_read(db, user.id, notification_id)
    if notification is None:
        raise NotFoundError("Notification", str(notification_id))
    return _to_response(notification, datetime.now(timezone.utc))


@router.post("/read-all")
def read_all_notifications(user: User = Depends(get_user_or_404), db: Session = Depends(get_db)):
    return {"marked_read": mark_all_as_read(db, user.id)}
