from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Literal

ActivityType = Literal["run", "ride", "swim", "workout"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class UserCreate(BaseModel):
    email: str = Field(min_length=3)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None  # IANA name


class UserUpdate(BaseModel):
    """Profile and notification preference changes. Omitted fields are untouched."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None
    email_notifications: Optional[bool] = None
    weekly_reports: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    avatar_url: Optional[str] = None
    timezone: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    email_notifications: bool
    weekly_reports: bool

    model_config = ConfigDict(from_attributes=True)


class ActivityCreate(BaseModel):
    activity_type: ActivityType
    title: str = ""
    duration: int = Field(ge=0, description="Minutes")
    distance: Optional[float] = Field(default=None, ge=0, description="Kilometers")
    calories: int = Field(ge=0)
    activity_date: Optional[date] = None


class ActivityResponse(BaseModel):
    id: UUID
    user_id: UUID
    activity_type: str
    title: str
    duration: int
    distance: Optional[float] = None
    calories: int
    activity_date: date
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatsResponse(BaseModel):
    total_activities: int
    total_duration: int
    total_distance: float
    total_calories: int


class WeeklySummaryResponse(BaseModel):
    week_start: date
    week_end: date
    total_workouts: int
    total_duration: int
    total_calories: int
    total_distance: float
    workout_days: int
    consistency_percentage: int


class InsightResponse(BaseModel):
    consistency_insight: str
    performance_insight: str
    motivational_message: str
    weekly_score: float
    focus_area: str


class WeeklyReportPreview(BaseModel):
    summary: WeeklySummaryResponse
    insights: InsightResponse
    activities_list: str
    next_week_goals: str


class ReminderCreate(BaseModel):
    title: str = Field(min_length=1)
    activity_type: str = "run"
    time: str = Field(default="07:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    days: List[Weekday] = Field(min_length=1)


class ReminderResponse(BaseModel):
    id: UUID
    title: str
    activity_type: str
    time: str
    days: List[str]
    is_active: bool
    created_at: datetime
    display_time: Optional[str] = None
    display_days: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    type: str
    timestamp: datetime
    is_read: bool
    activity_type: Optional[str] = None
    relative_time: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    unread_count: int
    notifications: List[NotificationResponse]


class ReportStatusResponse(BaseModel):
    stream: str
    state: Literal["idle", "analyzing", "sending", "sent", "error"]
    last_sent_week: Optional[str] = None
    current_week: str
    is_due: bool
    next_send_at: datetime
    next_send_in: str
    last_error: Optional[str] = None


class DispatchResponse(BaseModel):
    stream: str
    status: Literal["sent", "error", "skipped"]
    reason: Optional[str] = None
    week_key: Optional[str] = None
