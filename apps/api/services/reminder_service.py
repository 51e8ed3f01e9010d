"""
Reminder Service

Create, list, toggle and delete reminder rules.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import WEEKDAY_NAMES, ReminderRule
from services.reminder_checker import is_valid_time

logger = logging.getLogger(__name__)


class ReminderValidationError(ValueError):
    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


@dataclass
class ReminderData:
    title: str
    activity_type: str = "run"
    time: str = "07:00"
    days: List[str] = field(default_factory=list)


def _normalize_days(days: List[str]) -> List[str]:
    normalized = []
    for day in days:
        name = day.strip().lower()
        if name not in WEEKDAY_NAMES:
            raise ReminderValidationError("days", f"Unknown weekday: {day}")
        if name not in normalized:
            normalized.append(name)
    # Calendar order, Monday first
    return sorted(normalized, key=WEEKDAY_NAMES.index)


def validate_reminder(data: ReminderData) -> ReminderData:
    if not data.title or not data.title.strip():
        raise ReminderValidationError("title", "Reminder title is required")
    if not is_valid_time(data.time):
        raise ReminderValidationError("time", f"Time must be HH:MM (24h), got {data.time!r}")
    days = _normalize_days(data.days)
    if not days:
        raise ReminderValidationError("days", "Select at least one day")
    return ReminderData(title=data.title.strip(), activity_type=data.activity_type, time=data.time, days=days)


def create_reminder(db: Session, user_id: UUID, data: ReminderData) -> ReminderRule:
    """Validate and persist a new active rule. Raises ReminderValidationError."""
    data = validate_reminder(data)
    rule = ReminderRule(
        user_id=user_id,
        title=data.title,
        activity_type=data.activity_type,
        time=data.time,
        days=data.days,
        is_active=True,
    )
    db.add(rule)
    db.flush()
    logger.info(f"Reminder {rule.id} created for {user_id} at {rule.time} on {','.join(rule.days)}")
    return rule


def update_reminder(db: Session, user_id: UUID, reminder_id: UUID, data: ReminderData) -> Optional[ReminderRule]:
    rule = get_reminder(db, user_id, reminder_id)
    if rule is None:
        return None
    data = validate_reminder(data)
    rule.title = data.title
    rule.activity_type = data.activity_type
    rule.time = data.time
    rule.days = data.days
    db.flush()
    return rule


def get_reminder(db: Session, user_id: UUID, reminder_id: UUID) -> Optional[ReminderRule]:
    return (
        db.query(ReminderRule)
        .filter(ReminderRule.id == reminder_id, ReminderRule.user_id == user_id)
        .first()
    )


def list_reminders(db: Session, user_id: UUID, active_only: bool = False) -> List[ReminderRule]:
    query = db.query(ReminderRule).filter(ReminderRule.user_id == user_id)
    if active_only:
        query = query.filter(ReminderRule.is_active.is_(True))
    return query.order_by(ReminderRule.time.asc(), ReminderRule.created_at.asc()).all()


def toggle_reminder(db: Session, user_id: UUID, reminder_id: UUID) -> Optional[ReminderRule]:
    rule = get_reminder(db, user_id, reminder_id)
    if rule is None:
        return None
    rule.is_active = not rule.is_active
    db.flush()
    return rule


def delete_reminder(db: Session, user_id: UUID, reminder_id: UUID) -> bool:
    rule = get_reminder(db, user_id, reminder_id)
    if rule is None:
        return False
    db.delete(rule)
    db.flush()
    return True
