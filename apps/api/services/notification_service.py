"""
Notification Service

In-app inbox: append notifications, list newest first, mark read.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import Notification
from services.reminder_checker import NotificationDraft

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def add_notifications(db: Session, user_id: UUID, drafts: Iterable[NotificationDraft]) -> List[Notification]:
    """Persist drafts for a user. Caller commits."""
    created = []
    for draft in drafts:
        notification = Notification(
            user_id=user_id,
            title=draft.title,
            message=draft.message,
            type=draft.type,
            timestamp=_as_utc(draft.timestamp),
            activity_type=draft.activity_type,
            is_read=False,
        )
        db.add(notification)
        created.append(notification)
    if created:
        db.flush()
    return created


def list_notifications(db: Session, user_id: UUID, unread_only: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.timestamp.desc()).limit(limit).all()


def unread_count(db: Session, user_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_as_read(db: Session, user_id: UUID, notification_id: UUID) -> Optional[Notification]:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        return None
    notification.is_read = True
    db.flush()
    return notification


def mark_all_as_read(db: Session, user_id: UUID) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.flush()
    return updated


def format_relative_time(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """'Just now', '5m ago', '3h ago', '2d ago'."""
    now = now or datetime.now(timezone.utc)
    # SQLite hands back naive datetimes; those are stored as UTC
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    minutes = int((now - timestamp).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{days}d ago"
