"""
Reminder Checker

Compares the user's local wall clock with their active reminder rules.

A rule fires when the local time truncated to the minute equals the rule's
"HH:MM" exactly and the local weekday is one of the rule's days. There is no
tolerance window: a tick that does not land inside the matching minute misses
the reminder. The reminder beat runs every minute for that reason.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from models import WEEKDAY_NAMES, ReminderRule

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

ACTIVITY_EMOJI = {
    "run": "🏃‍♂️",
    "ride": "🚴‍♂️",
    "swim": "🏊‍♂️",
    "workout": "💪",
    "yoga": "🧘‍♀️",
    "walk": "🚶‍♂️",
}

DAY_ABBREVIATIONS = {name: name[:3].capitalize() for name in WEEKDAY_NAMES}


@dataclass
class NotificationDraft:
    """A notification ready to be persisted for one user."""
    title: str
    message: str
    type: str
    timestamp: datetime
    activity_type: Optional[str] = None


def weekday_name(moment: datetime) -> str:
    return WEEKDAY_NAMES[moment.weekday()]


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(TIME_PATTERN.match(value))


def format_time(value: str) -> str:
    """'07:00' -> '7:00 AM', '18:30' -> '6:30 PM'."""
    hours, minutes = value.split(":")
    hour = int(hours)
    ampm = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {ampm}"


def format_days(days: Iterable[str]) -> str:
    return ", ".join(DAY_ABBREVIATIONS.get(day, day) for day in days)


def rule_matches(rule: ReminderRule, local_now: datetime) -> bool:
    if not rule.is_active:
        return False
    return rule.time == local_now.strftime("%H:%M") and weekday_name(local_now) in (rule.days or [])


def reminder_notification(rule: ReminderRule, local_now: datetime) -> NotificationDraft:
    emoji = ACTIVITY_EMOJI.get(rule.activity_type, ACTIVITY_EMOJI["run"])
    return NotificationDraft(
        title=rule.title,
        message=f"Time for your {rule.activity_type}! {emoji} Scheduled for {format_time(rule.time)}.",
        type="reminder",
        timestamp=local_now,
        activity_type=rule.activity_type,
    )


def check_reminders(rules: Iterable[ReminderRule], local_now: datetime) -> List[NotificationDraft]:
    """One notification per matching rule for this tick."""
    drafts = []
    for rule in rules:
        try:
            if rule_matches(rule, local_now):
                drafts.append(reminder_notification(rule, local_now))
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed reminder {getattr(rule, 'id', '?')}: {e}")
    return drafts
