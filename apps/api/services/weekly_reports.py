"""
Weekly Reports and Reminder Ticks

Entry points the schedulers call:

- ``send_weekly_reports_to_all_users``: every opted-in user, every stream.
  One user's failure never blocks the others.
- ``run_reminder_checks``: reminder rules (every tick) and coach reminders
  (first tick of each local hour) for every user with something to check.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from models import ReminderRule, User
from services.coach_reminders import coach_reminders, goals_with_progress
from services.notification_service import add_notifications
from services.reminder_checker import check_reminders
from services.report_dispatcher import STREAMS, ReportDispatcher, get_dispatcher, to_local
from services.user_service import UserService
from services.weekly_aggregator import get_week_start, load_week

logger = logging.getLogger(__name__)


def send_weekly_reports_to_all_users(
    db: Session,
    now: datetime,
    stream_names: Optional[Iterable[str]] = None,
    force: bool = False,
    dispatchers: Optional[Dict[str, ReportDispatcher]] = None,
) -> Dict:
    """
    Run every requested stream for every user subscribed to weekly reports.

    ``force`` is the manual trigger: it ignores the send window but not the
    per-week marker.
    """
    stream_names = list(stream_names or STREAMS.keys())
    users = UserService(db).get_all_users_with_weekly_reports()
    logger.info(f"📋 Found {len(users)} users subscribed to weekly reports")

    counts = {"sent": 0, "skipped": 0, "error": 0}
    results: List[Dict] = []

    for user in users:
        for name in stream_names:
            dispatcher = (dispatchers or {}).get(name) or get_dispatcher(name)
            try:
                result = dispatcher.run(db, user, now, force=force)
            except Exception as e:
                logger.error(f"❌ Error processing user {user.email} for {name}: {e}", exc_info=True)
                counts["error"] += 1
                results.append({"user_id": str(user.id), "stream": name, "status": "error", "reason": str(e)})
                continue

            counts[result.status] += 1
            results.append({
                "user_id": str(user.id),
                "stream": name,
                "status": result.status,
                "reason": result.reason,
                "week_key": result.week_key,
            })

    logger.info(
        f"🎉 Weekly report run complete: sent={counts['sent']} "
        f"skipped={counts['skipped']} error={counts['error']}"
    )
    return {"status": "success", "total_users": len(users), **counts, "results": results}


def run_reminder_checks(db: Session, now: datetime) -> Dict:
    """Raise reminder and coach notifications due at ``now``. Commits."""
    rules = (
        db.query(ReminderRule)
        .filter(ReminderRule.is_active.is_(True))
        .order_by(ReminderRule.user_id)
        .all()
    )
    rules_by_user: Dict = {}
    for rule in rules:
        rules_by_user.setdefault(rule.user_id, []).append(rule)

    users = db.query(User).all()
    created = 0

    for user in users:
        local_now = to_local(now, user.timezone)
        try:
            drafts = check_reminders(rules_by_user.get(user.id, []), local_now)
            if local_now.minute == 0:
                activities, _ = load_week(db, user.id, get_week_start(local_now.date()))
                drafts += coach_reminders(goals_with_progress(activities), local_now)
            if drafts:
                add_notifications(db, user.id, drafts)
                created += len(drafts)
        except Exception as e:
            logger.error(f"Reminder check failed for {user.id}: {e}", exc_info=True)

    db.commit()
    if created:
        logger.info(f"🔔 Created {created} reminder notifications")
    return {"status": "success", "users_checked": len(users), "notifications_created": created}
