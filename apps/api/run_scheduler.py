#!/usr/bin/env python3
"""Single-process scheduler: weekly report checks and reminder checks.

For deployments without a Celery worker + beat. Both checks run once at
startup, then reports every REPORT_CHECK_INTERVAL_S and reminders every
REMINDER_CHECK_INTERVAL_S.
"""

import logging
import sys
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

from core.config import settings  # noqa: E402
from core.database import get_db_sync, init_db  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from services.scheduler import PeriodicScheduler  # noqa: E402
from services.weekly_reports import run_reminder_checks, send_weekly_reports_to_all_users  # noqa: E402

logger = logging.getLogger(__name__)


def check_weekly_reports(now: datetime) -> dict:
    db = get_db_sync()
    try:
        return send_weekly_reports_to_all_users(db, now)
    finally:
        db.close()


def check_reminders(now: datetime) -> dict:
    db = get_db_sync()
    try:
        return run_reminder_checks(db, now.replace(second=0, microsecond=0))
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def build_scheduler() -> PeriodicScheduler:
    scheduler = PeriodicScheduler()
    scheduler.register("weekly_reports", check_weekly_reports, settings.REPORT_CHECK_INTERVAL_S)
    scheduler.register("reminders", check_reminders, settings.REMINDER_CHECK_INTERVAL_S)
    return scheduler


def main() -> int:
    setup_logging("scheduler")
    init_db()
    try:
        build_scheduler().run_forever()
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
