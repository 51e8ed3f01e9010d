"""
Weekly Aggregator

Summarizes a user's activities for one calendar week. Always recomputed from
the store; nothing is cached.
"""

import math
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Iterable, List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import settings
from models import UserActivity
from services.activity_service import ActivityService
from services.week_key import js_weekday


@dataclass(frozen=True)
class WeeklySummary:
    total_workouts: int = 0
    total_duration: int = 0  # minutes
    total_calories: int = 0
    total_distance: float = 0.0  # km
    workout_days: int = 0  # distinct dates, 0-7
    consistency_percentage: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_week_start(day: date, first_weekday: int = None) -> date:
    """
    Start of the week containing ``day``.

    ``first_weekday`` uses Sunday = 0; with the default (Sunday) a Sunday is
    its own week start.
    """
    if first_weekday is None:
        first_weekday = settings.WEEK_FIRST_DAY
    offset = (js_weekday(day) - first_weekday) % 7
    return day - timedelta(days=offset)


def summarize_activities(activities: Iterable[UserActivity]) -> WeeklySummary:
    activities = list(activities)
    workout_days = len({a.activity_date for a in activities})
    return WeeklySummary(
        total_workouts=len(activities),
        total_duration=sum(a.duration or 0 for a in activities),
        total_calories=sum(a.calories or 0 for a in activities),
        total_distance=sum(a.distance or 0 for a in activities),
        workout_days=workout_days,
        consistency_percentage=round_half_up(workout_days / 7 * 100),
    )


def load_week(db: Session, user_id: UUID, week_start: date) -> Tuple[List[UserActivity], WeeklySummary]:
    """Activities in [week_start, week_start + 6] plus their summary."""
    activities = ActivityService(db).get_weekly_activities(user_id, week_start)
    return activities, summarize_activities(activities)


def summarize(db: Session, user_id: UUID, week_start: date) -> WeeklySummary:
    _, summary = load_week(db, user_id, week_start)
    return summary
