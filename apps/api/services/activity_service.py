"""
Activity Service

Activity record store: create, list, list within a week, all-time totals.

Read failures are logged and degrade to empty results so weekly aggregation
falls back to "no activity this week" instead of failing the caller.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import ACTIVITY_TYPES, UserActivity

logger = logging.getLogger(__name__)


@dataclass
class CreateActivityData:
    user_id: UUID
    activity_type: str
    title: str
    duration: int  # minutes
    calories: int
    distance: Optional[float] = None  # km
    activity_date: Optional[date] = None


class ActivityService:
    """Activity store bound to a database session."""

    def __init__(self, db: Session):
        self.db = db

    def create_activity(self, data: CreateActivityData) -> Optional[UserActivity]:
        if data.activity_type not in ACTIVITY_TYPES:
            logger.error(f"ActivityService: unknown activity type {data.activity_type!r}")
            return None

        activity = UserActivity(
            user_id=data.user_id,
            activity_type=data.activity_type,
            title=data.title,
            duration=data.duration,
            distance=data.distance or 0,
            calories=data.calories,
            activity_date=data.activity_date or date.today(),
        )
        try:
            self.db.add(activity)
            self.db.commit()
            self.db.refresh(activity)
            return activity
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"ActivityService: Error creating activity: {e}")
            return None

    def get_user_activities(self, user_id: UUID, limit: Optional[int] = None) -> List[UserActivity]:
        try:
            query = (
                self.db.query(UserActivity)
                .filter(UserActivity.user_id == user_id)
                .order_by(UserActivity.activity_date.desc(), UserActivity.created_at.desc())
            )
            if limit:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"ActivityService: Error fetching user activities: {e}")
            return []

    def get_weekly_activities(self, user_id: UUID, week_start: date) -> List[UserActivity]:
        """Activities dated within [week_start, week_start + 6], oldest first."""
        week_end = week_start + timedelta(days=6)
        try:
            return (
                self.db.query(UserActivity)
                .filter(
                    UserActivity.user_id == user_id,
                    UserActivity.activity_date >= week_start,
                    UserActivity.activity_date <= week_end,
                )
                .order_by(UserActivity.activity_date.asc(), UserActivity.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"ActivityService: Error fetching weekly activities: {e}")
            return []

    def get_user_stats(self, user_id: UUID) -> Dict[str, float]:
        empty = {"total_activities": 0, "total_duration": 0, "total_distance": 0.0, "total_calories": 0}
        try:
            row = (
                self.db.query(
                    func.count(UserActivity.id),
                    func.coalesce(func.sum(UserActivity.duration), 0),
                    func.coalesce(func.sum(UserActivity.distance), 0.0),
                    func.coalesce(func.sum(UserActivity.calories), 0),
                )
                .filter(UserActivity.user_id == user_id)
                .one()
            )
        except SQLAlchemyError as e:
            logger.error(f"ActivityService: Error fetching user stats: {e}")
            return empty

        return {
            "total_activities": int(row[0]),
            "total_duration": int(row[1]),
            "total_distance": float(row[2]),
            "total_calories": int(row[3]),
        }
