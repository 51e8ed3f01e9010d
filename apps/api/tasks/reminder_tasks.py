"""
Reminder Tasks

Celery Beat runs `check_reminders` every minute. Each run matches the
current local minute against every active reminder rule and, on the hour,
evaluates coach goal reminders.
"""

from datetime import datetime, timezone
from typing import Dict

from sqlalchemy.orm import Session

from core.database import get_db_sync
from tasks import celery_app
from services.weekly_reports import run_reminder_checks
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.check_reminders")
def check_reminders_task() -> Dict:
    # Truncate to the minute so a late-starting task still matches its slot.
    now = datetime.now(timezone.utc).replace(second=0, microsecond=0)

    db: Session = get_db_sync()
    try:
        return run_reminder_checks(db, now)
    except Exception as e:
        db.rollback()
        logger.error(f"Error in check_reminders_task: {str(e)}")
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
