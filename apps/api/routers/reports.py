"""
Weekly Reports API Router

Status, manual send and retry for the weekly report streams, plus a bulk
trigger that queues the all-users run on the worker.
"""
import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.dependencies import get_user_or_404
from core.exceptions import NotFoundError
from models import User
from schemas import DispatchResponse, ReportStatusResponse
from services.report_dispatcher import (
    STREAMS,
    ReportDispatcher,
    describe_time_until,
    get_dispatcher,
    next_send_time,
    to_local,
    utc_now,
)
from services.week_key import week_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Reports"])


def _dispatcher_or_404(stream: str) -> ReportDispatcher:
    if stream not in STREAMS:
        raise NotFoundError("Report stream", stream)
    return get_dispatcher(stream)


@router.get("/v1/users/{user_id}/reports/{stream}/status", response_model=ReportStatusResponse)
def report_status(
    stream: str = Path(..., description="weekly_summary or ai_weekly_summary"),
    user: User = Depends(get_user_or_404),
):
    dispatcher = _dispatcher_or_404(stream)
    now = utc_now()
    local_now = to_local(now, user.timezone)
    dispatch_status = dispatcher.status_for(user.id, now)
    marker = dispatcher.last_sent_marker(user.id)

    return ReportStatusResponse(
        stream=stream,
        state=dispatch_status.state.value,
        last_sent_week=marker,
        current_week=week_key(local_now, dispatcher.numbering),
        is_due=dispatcher.is_due(local_now, marker),
        next_send_at=next_send_time(local_now, dispatcher.send_weekday, dispatcher.send_hour),
        next_send_in=describe_time_until(local_now, dispatcher.send_weekday, dispatcher.send_hour),
        last_error=dispatch_status.last_error,
    )


@router.post("/v1/users/{user_id}/reports/{stream}/send", response_model=DispatchResponse)
def send_report(
    stream: str,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    """Send this week's report now, outside the send window. Never re-sends a week."""
    result = _dispatcher_or_404(stream).run(db, user, utc_now(), force=True)
    return DispatchResponse(stream=stream, status=result.status, reason=result.reason, week_key=result.week_key)


@router.post("/v1/users/{user_id}/reports/{stream}/retry", response_model=DispatchResponse)
def retry_report(
    stream: str,
    user: User = Depends(get_user_or_404),
    db: Session = Depends(get_db),
):
    result = _dispatcher_or_404(stream).retry(db, user, utc_now())
    return DispatchResponse(stream=stream, status=result.status, reason=result.reason, week_key=result.week_key)


@router.post("/v1/reports/trigger", status_code=status.HTTP_202_ACCEPTED)
def trigger_all_reports():
    """Queue a forced run of every stream for every opted-in user."""
    from tasks.report_tasks import send_all_weekly_reports_task

    task = send_all_weekly_reports_task.delay(force=True)
    logger.info(f"Queued weekly report run {task.id}")
    return {"status": "queued", "task_id": task.id}
