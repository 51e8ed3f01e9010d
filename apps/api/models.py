from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base
import uuid


ACTIVITY_TYPES = ("run", "ride", "swim", "workout")

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

NOTIFICATION_TYPES = (
    "reminder",
    "achievement",
    "social",
    "motivation",
    "goal_check",
    "weekly_summary",
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, unique=True, nullable=False)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    avatar_url = Column(Text, nullable=True)
    timezone = Column(Text, nullable=True)  # IANA name, e.g. "America/New_York"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Notification preferences: both gate the weekly report dispatcher
    email_notifications = Column(Boolean, default=True, nullable=False)
    weekly_reports = Column(Boolean, default=True, nullable=False)

    activities = relationship("UserActivity", back_populates="user", lazy="dynamic")
    reminders = relationship("ReminderRule", back_populates="user", lazy="dynamic")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class UserActivity(Base):
    """
    A single workout entry.

    Immutable once created; owned by exactly one user.
    """
    __tablename__ = "user_activities"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    activity_type = Column(Text, nullable=False)
    title = Column(Text, nullable=False, default="")
    duration = Column(Integer, nullable=False)  # minutes
    distance = Column(Float, nullable=False, default=0)  # km, 0 when not applicable
    calories = Column(Integer, nullable=False, default=0)
    activity_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="activities")

    __table_args__ = (
        CheckConstraint("duration >= 0", name="ck_user_activities_duration_nonneg"),
        CheckConstraint("distance >= 0", name="ck_user_activities_distance_nonneg"),
        CheckConstraint("calories >= 0", name="ck_user_activities_calories_nonneg"),
        CheckConstraint(
            "activity_type IN ('run', 'ride', 'swim', 'workout')",
            name="ck_user_activities_activity_type",
        ),
        Index("ix_user_activities_user_date", "user_id", "activity_date"),
    )


class ReminderRule(Base):
    """User-configured reminder slot: time of day plus a set of weekdays."""
    __tablename__ = "reminders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    activity_type = Column(Text, nullable=False, default="run")
    time = Column(Text, nullable=False)  # "HH:MM", 24h
    days = Column(JSON, nullable=False, default=list)  # lowercase weekday names
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="reminders")


class Notification(Base):
    """In-app notification. Only mutation after creation is marking it read."""
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Text, nullable=False, default="reminder")
    timestamp = Column(DateTime(timezone=True), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    activity_type = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_notifications_user_timestamp", "user_id", "timestamp"),
    )
