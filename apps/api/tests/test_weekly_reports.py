"""
Tests for the bulk weekly report run and the reminder tick.
"""
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

from models import Notification, User
from services.marker_store import InMemoryMarkerStore
from services.report_dispatcher import STREAMS, ReportDispatcher, ReportStream
from services.reminder_service import ReminderData, create_reminder
from services.weekly_reports import run_reminder_checks, send_weekly_reports_to_all_users

SUNDAY_EVENING = datetime(2025, 2, 16, 19, 30, tzinfo=timezone.utc)
MONDAY_7AM = datetime(2025, 2, 17, 7, 0, tzinfo=timezone.utc)


def _dispatchers(send):
    return {
        name: ReportDispatcher(
            ReportStream(
                name=name,
                marker_key=stream.marker_key,
                include_insights=stream.include_insights,
                send=send,
            ),
            marker_store=InMemoryMarkerStore(),
            reset_delay_s=10,
            send_weekday=0,
            send_hour=19,
            numbering="legacy",
        )
        for name, stream in STREAMS.items()
    }


def _user(db_session, email, **kwargs):
    user = User(email=email, first_name="Sam", last_name="Lee", **kwargs)
    db_session.add(user)
    db_session.commit()
    return user


class TestSendWeeklyReportsToAllUsers:
    def test_sends_every_stream_to_opted_in_users(self, db_session, test_user):
        _user(db_session, "optout@example.com", weekly_reports=False)
        send = MagicMock(return_value=True)

        result = send_weekly_reports_to_all_users(db_session, SUNDAY_EVENING, dispatchers=_dispatchers(send))

        assert result["status"] == "success"
        assert result["total_users"] == 1
        assert result["sent"] == 2
        assert {r["stream"] for r in result["results"]} == {"weekly_summary", "ai_weekly_summary"}
        assert all(r["week_key"] == "2025-W8" for r in result["results"])
        assert send.call_count == 2

    def test_second_run_same_week_sends_nothing(self, db_session, test_user):
        send = MagicMock(return_value=True)
        dispatchers = _dispatchers(send)

        send_weekly_reports_to_all_users(db_session, SUNDAY_EVENING, dispatchers=dispatchers)
        again = send_weekly_reports_to_all_users(db_session, SUNDAY_EVENING, dispatchers=dispatchers)

        assert again["sent"] == 0
        assert again["skipped"] == 2
        assert send.call_count == 2

    def test_stream_selection(self, db_session, test_user):
        send = MagicMock(return_value=True)

        result = send_weekly_reports_to_all_users(
            db_session, SUNDAY_EVENING, stream_names=["ai_weekly_summary"], dispatchers=_dispatchers(send)
        )

        assert result["sent"] == 1
        assert send.call_args[0][0].ai_insights is not None

    def test_report_uses_this_weeks_activities(self, db_session, test_user, add_activity):
        add_activity(test_user, "run", date(2025, 2, 16), duration=45, calories=420, distance=8.2)
        add_activity(test_user, "run", date(2025, 2, 9), duration=30, calories=300)  # last week
        send = MagicMock(return_value=True)

        send_weekly_reports_to_all_users(
            db_session, SUNDAY_EVENING, stream_names=["weekly_summary"], dispatchers=_dispatchers(send)
        )

        payload = send.call_args[0][0]
        assert payload.summary.total_workouts == 1
        assert payload.summary.total_calories == 420
        assert payload.activities[0].distance == 8.2

    def test_one_failing_user_does_not_block_others(self, db_session, test_user):
        _user(db_session, "second@example.com")
        broken = MagicMock()
        broken.run.side_effect = RuntimeError("boom")

        result = send_weekly_reports_to_all_users(
            db_session, SUNDAY_EVENING, stream_names=["weekly_summary"], dispatchers={"weekly_summary": broken}
        )

        assert result["total_users"] == 2
        assert result["error"] == 2
        assert broken.run.call_count == 2

    def test_outside_window_everything_is_skipped(self, db_session, test_user):
        send = MagicMock(return_value=True)

        result = send_weekly_reports_to_all_users(db_session, MONDAY_7AM, dispatchers=_dispatchers(send))

        assert result["skipped"] == 2
        assert {r["reason"] for r in result["results"]} == {"not_due"}
        send.assert_not_called()

    def test_manual_trigger_ignores_window(self, db_session, test_user):
        send = MagicMock(return_value=True)

        result = send_weekly_reports_to_all_users(db_session, MONDAY_7AM, force=True, dispatchers=_dispatchers(send))

        assert result["sent"] == 2


class TestRunReminderChecks:
    def test_matching_rule_creates_notification(self, db_session, test_user):
        create_reminder(db_session, test_user.id, ReminderData(title="Morning run", time="07:00", days=["monday"]))
        db_session.commit()

        result = run_reminder_checks(db_session, MONDAY_7AM)

        assert result["notifications_created"] == 1
        notification = db_session.query(Notification).filter_by(user_id=test_user.id).one()
        assert notification.title == "Morning run"
        assert notification.is_read is False

    def test_rules_are_evaluated_in_user_local_time(self, db_session, test_user):
        new_yorker = _user(db_session, "ny@example.com", timezone="America/New_York")
        create_reminder(db_session, new_yorker.id, ReminderData(title="NY run", time="07:00", days=["monday"]))
        db_session.commit()

        assert run_reminder_checks(db_session, MONDAY_7AM)["notifications_created"] == 0
        # 12:00 UTC is 07:00 in New York
        assert run_reminder_checks(db_session, datetime(2025, 2, 17, 12, 0, tzinfo=timezone.utc))["notifications_created"] == 1

    def test_no_match_a_minute_late(self, db_session, test_user):
        create_reminder(db_session, test_user.id, ReminderData(title="Morning run", time="07:00", days=["monday"]))
        db_session.commit()

        assert run_reminder_checks(db_session, datetime(2025, 2, 17, 7, 1, tzinfo=timezone.utc))["notifications_created"] == 0

    def test_coach_motivation_on_the_hour(self, db_session, test_user):
        result = run_reminder_checks(db_session, datetime(2025, 2, 17, 8, 0, tzinfo=timezone.utc))

        # Default run and ride goals, both untouched this week
        assert result["notifications_created"] == 2
        types = {n.type for n in db_session.query(Notification).filter_by(user_id=test_user.id)}
        assert types == {"motivation"}
