"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

from core.config import settings

# Schedule configuration
beat_schedule = {
    # Weekly reports - checked hourly; the dispatcher decides per user
    # (local Sunday 19:00 window + last-sent marker), so users in every
    # timezone get theirs in the first check after their window opens.
    'send-weekly-reports': {
        'task': 'tasks.send_all_weekly_reports',
        'schedule': float(settings.REPORT_CHECK_INTERVAL_S),
    },
    # Reminders match on exact HH:MM, so this must tick every minute.
    'check-reminders': {
        'task': 'tasks.check_reminders',
        'schedule': crontab(minute='*'),
    },
}
