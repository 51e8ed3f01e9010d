"""
Scheduled Weekly Report Tasks

Weekly summary emails (plain and AI-flavored) per user.
Runs via Celery Beat scheduler.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from celery import Task
from sqlalchemy.orm import Session

from core.database import get_db_sync
from tasks import celery_app
from models import User
from services.report_dispatcher import STREAMS, get_dispatcher
from services.weekly_reports import send_weekly_reports_to_all_users
import logging

logger = logging.getLogger(__name__)


def _parse_now(now_iso: Optional[str]) -> datetime:
    if not now_iso:
        return datetime.now(timezone.utc)
    now = datetime.fromisoformat(now_iso)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


@celery_app.task(name="tasks.send_weekly_report", bind=True)
def send_weekly_report_task(
    self: Task,
    user_id: str,
    stream: str = "ai_weekly_summary",
    force: bool = False,
    now_iso: Optional[str] = None,
) -> Dict:
    """
    Send one stream's weekly report to a single user.

    ``force`` ignores the send window (manual trigger / retry); the weekly
    marker still prevents a second send in the same week.
    """
    if stream not in STREAMS:
        return {"status": "error", "message": f"Unknown report stream: {stream}"}

    db: Session = get_db_sync()
    try:
        user = db.query(User).filter(User.id == UUID(user_id)).first()
        if not user:
            return {"status": "error", "message": "User not found"}

        result = get_dispatcher(stream).run(db, user, _parse_now(now_iso), force=force)
        return {
            "status": result.status,
            "reason": result.reason,
            "user_id": user_id,
            "stream": stream,
            "week_key": result.week_key,
        }
    except Exception as e:
        logger.error(f"Error in send_weekly_report_task: {str(e)}")
        return {"status": "error", "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.send_all_weekly_reports")
def send_all_weekly_reports_task(
    streams: Optional[List[str]] = None,
    force: bool = False,
    now_iso: Optional[str] = None,
) -> Dict:
    """
    Check every opted-in user against every report stream.

    Called hourly by Celery Beat; each user's local send window and
    last-sent marker decide whether anything goes out.
    """
    db: Session = get_db_sync()
    try:
        return send_weekly_reports_to_all_users(db, _parse_now(now_iso), stream_names=streams, force=force)
    except Exception as e:
        logger.error(f"Error in send_all_weekly_reports_task: {str(e)}")
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
