"""
Activities API Router

Log workouts, list them, and preview the current week's summary and
insights exactly as the weekly report would present them.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.dependencies import get_user_or_404
from core.exceptions import ServiceUnavailableError
from models import User
from schemas import (
    ActivityCreate,
    ActivityResponse,
    InsightResponse,
    WeeklyReportPreview,
    WeeklySummaryResponse,
)
from services.activity_service import ActivityService, CreateActivityData
from services.email_service import format_activities_list, generate_ai_next_week_goals
from services.insight_generator import generate_insights, get_ai_focus_area
from services.report_dispatcher import build_payload, to_local
from services.weekly_aggregator import WeeklySummary, get_week_start, load_week

router = APIRouter(prefix="/v1/users/{user_id}/activities", tags=["activities"])


def _resolve_week_start(user: User, week_start: Optional[date]) -> date:
    if week_start is not None:
        return get_week_start(week_start)
    local_today = to_local(datetime.now(timezone.utc), user.timezone).date()
    return get_week_start(local_today)


def _summary_response(week_start: date, summary: WeeklySummary) -> WeeklySummaryResponse:
    return WeeklySummaryResponse(
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
        **summary.to_dict(),
    )


@router.post("", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
def create_activity(
    request: ActivityCreate,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    activity = ActivityService(db).create_activity(
        CreateActivityData(user_id=user.id, **request.model_dump())
    )
    if activity is None:
        raise ServiceUnavailableError("Could not save activity")
    return activity


@router.get("", response_model=List[ActivityResponse])
def list_activities(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    limit: Optional[int] = Query(None, ge=1, le=500, description="Number of activities to return"),
):
    """Newest first."""
    return ActivityService(db).get_user_activities(user.id, limit=limit)


@router.get("/weekly-summary", response_model=WeeklySummaryResponse)
def weekly_summary(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    week_start: Optional[date] = Query(None, description="Any date in the target week; defaults to this week"),
):
    start = _resolve_week_start(user, week_start)
    _, summary = load_week(db, user.id, start)
    return _summary_response(start, summary)


@router.get("/weekly-report", response_model=WeeklyReportPreview)
def weekly_report_preview(
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
    week_start: Optional[date] = Query(None),
):
    """The AI weekly summary content for a week, without sending it."""
    start = _resolve_week_start(user, week_start)
    activities, summary = load_week(db, user.id, start)
    insights = generate_insights(summary)
    payload = build_payload(
        user,
        to_local(datetime.now(timezone.utc), user.timezone),
        activities,
        summary,
        include_insights=True,
    )
    return WeeklyReportPreview(
        summary=_summary_response(start, summary),
        insights=InsightResponse(**insights.to_dict(), focus_area=get_ai_focus_area(summary)),
        activities_list=format_activities_list(payload.activities),
        next_week_goals=generate_ai_next_week_goals(payload),
    )
