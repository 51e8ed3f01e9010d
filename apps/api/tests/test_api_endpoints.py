"""
HTTP-level tests for the users, activities, reminders, notifications and
reports routers.
"""
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from core.database import get_db
from main import app
from services.reminder_checker import NotificationDraft
from services.notification_service import add_notifications
from services.week_key import is_valid_week_key


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session
        db_session.commit()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestUsers:
    def test_create_and_fetch(self, client):
        response = client.post(
            "/v1/users",
            json={"email": "New.User@Example.com", "first_name": "New", "last_name": "User"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "new.user@example.com"
        assert body["full_name"] == "New User"
        assert body["weekly_reports"] is True
        assert body["email_notifications"] is True

        fetched = client.get(f"/v1/users/{body['id']}")
        assert fetched.status_code == 200
        by_email = client.get("/v1/users/by-email", params={"email": "new.user@example.com"})
        assert by_email.json()["id"] == body["id"]

    def test_duplicate_email_conflicts(self, client, test_user):
        response = client.post(
            "/v1/users",
            json={"email": test_user.email, "first_name": "Dup", "last_name": "User"},
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "CONFLICT"

    def test_unknown_user_is_404(self, client):
        response = client.get(f"/v1/users/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_update_preferences(self, client, test_user):
        response = client.patch(f"/v1/users/{test_user.id}", json={"weekly_reports": False, "first_name": ""})
        assert response.status_code == 200
        assert response.json()["weekly_reports"] is False
        # Empty names do not overwrite
        assert response.json()["first_name"] == "Jamie"

    def test_stats(self, client, test_user, add_activity):
        add_activity(test_user, "run", date(2025, 2, 10), duration=45, calories=420, distance=8.2)
        add_activity(test_user, "swim", date(2025, 1, 5), duration=30, calories=250)

        response = client.get(f"/v1/users/{test_user.id}/stats")

        assert response.json() == {
            "total_activities": 2,
            "total_duration": 75,
            "total_distance": pytest.approx(8.2),
            "total_calories": 670,
        }


class TestActivities:
    def test_log_and_list(self, client, test_user):
        response = client.post(
            f"/v1/users/{test_user.id}/activities",
            json={"activity_type": "run", "title": "Tempo", "duration": 45, "calories": 420, "distance": 8.2, "activity_date": "2025-02-10"},
        )
        assert response.status_code == 201
        assert response.json()["activity_type"] == "run"

        listed = client.get(f"/v1/users/{test_user.id}/activities").json()
        assert [a["title"] for a in listed] == ["Tempo"]

    def test_unknown_activity_type_is_rejected(self, client, test_user):
        response = client.post(
            f"/v1/users/{test_user.id}/activities",
            json={"activity_type": "skydive", "duration": 45, "calories": 420},
        )
        assert response.status_code == 422

    def test_negative_duration_is_rejected(self, client, test_user):
        response = client.post(
            f"/v1/users/{test_user.id}/activities",
            json={"activity_type": "run", "duration": -5, "calories": 420},
        )
        assert response.status_code == 422

    def test_weekly_summary_for_given_week(self, client, test_user, add_activity):
        add_activity(test_user, "run", date(2025, 2, 17), duration=45, calories=420, distance=8.2)
        add_activity(test_user, "workout", date(2025, 2, 18), duration=30, calories=280)
        add_activity(test_user, "ride", date(2025, 2, 17), duration=60, calories=480, distance=15.7)

        response = client.get(
            f"/v1/users/{test_user.id}/activities/weekly-summary", params={"week_start": "2025-02-19"}
        )

        body = response.json()
        assert body["week_start"] == "2025-02-16"
        assert body["week_end"] == "2025-02-22"
        assert body["total_workouts"] == 3
        assert body["total_duration"] == 135
        assert body["total_calories"] == 1180
        assert body["workout_days"] == 2
        assert body["consistency_percentage"] == 29

    def test_weekly_report_preview(self, client, test_user, add_activity):
        add_activity(test_user, "run", date(2025, 2, 17), duration=45, calories=420, distance=8.2)

        response = client.get(
            f"/v1/users/{test_user.id}/activities/weekly-report", params={"week_start": "2025-02-16"}
        )

        body = response.json()
        assert body["summary"]["total_workouts"] == 1
        assert body["insights"]["consistency_insight"].startswith("🎯")
        assert body["insights"]["focus_area"].startswith("Build consistency")
        assert body["activities_list"] == "• Run on Mon, Feb 17: 45m - 8.2km (420 cal)"
        assert body["next_week_goals"].startswith("🎯 AI Recommended Targets:")


class TestReminders:
    def test_crud(self, client, test_user):
        base = f"/v1/users/{test_user.id}/reminders"
        created = client.post(base, json={"title": "Morning run", "time": "07:00", "days": ["friday", "monday"]})
        assert created.status_code == 201
        body = created.json()
        assert body["days"] == ["monday", "friday"]
        assert body["display_time"] == "7:00 AM"
        assert body["display_days"] == "Mon, Fri"

        toggled = client.post(f"{base}/{body['id']}/toggle")
        assert toggled.json()["is_active"] is False
        assert client.get(base, params={"active_only": True}).json() == []

        edited = client.put(f"{base}/{body['id']}", json={"title": "Evening run", "time": "18:30", "days": ["tuesday"]})
        assert edited.json()["display_time"] == "6:30 PM"

        assert client.delete(f"{base}/{body['id']}").status_code == 204
        assert client.get(base).json() == []

    def test_invalid_time_is_rejected(self, client, test_user):
        response = client.post(
            f"/v1/users/{test_user.id}/reminders", json={"title": "Run", "time": "7:00", "days": ["monday"]}
        )
        assert response.status_code == 422

    def test_blank_title_is_rejected(self, client, test_user):
        response = client.post(
            f"/v1/users/{test_user.id}/reminders", json={"title": "   ", "time": "07:00", "days": ["monday"]}
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR_TITLE"

    def test_unknown_reminder_is_404(self, client, test_user):
        response = client.post(f"/v1/users/{test_user.id}/reminders/{uuid4()}/toggle")
        assert response.status_code == 404


class TestNotifications:
    def test_inbox(self, client, db_session, test_user):
        now = datetime.now(timezone.utc)
        first, _ = add_notifications(db_session, test_user.id, [
            NotificationDraft(title="Morning run", message="Time for your run!", type="reminder", timestamp=now - timedelta(hours=3), activity_type="run"),
            NotificationDraft(title="AI Coach: Weekly Summary", message="Great week!", type="weekly_summary", timestamp=now),
        ])
        db_session.commit()
        base = f"/v1/users/{test_user.id}/notifications"

        inbox = client.get(base).json()
        assert inbox["unread_count"] == 2
        assert [n["title"] for n in inbox["notifications"]] == ["AI Coach: Weekly Summary", "Morning run"]
        assert inbox["notifications"][1]["relative_time"] == "3h ago"

        read = client.post(f"{base}/{first.id}/read")
        assert read.json()["is_read"] is True
        assert client.get(base).json()["unread_count"] == 1

        assert client.post(f"{base}/read-all").json() == {"marked_read": 1}
        assert client.get(base, params={"unread_only": True}).json()["notifications"] == []


class TestReports:
    def test_status(self, client, test_user):
        response = client.get(f"/v1/users/{test_user.id}/reports/ai_weekly_summary/status")

        assert response.status_code == 200
        body = response.json()
        assert body["stream"] == "ai_weekly_summary"
        assert body["state"] == "idle"
        assert body["last_sent_week"] is None
        assert is_valid_week_key(body["current_week"])
        assert body["next_send_in"].startswith("in ") or body["next_send_in"] == "soon"

    def test_unknown_stream_is_404(self, client, test_user):
        response = client.get(f"/v1/users/{test_user.id}/reports/monthly/status")
        assert response.status_code == 404

    def test_manual_send_then_status_shows_marker(self, client, test_user):
        with patch("services.email_service.email_service.send_ai_weekly_summary", return_value=True) as send:
            sent = client.post(f"/v1/users/{test_user.id}/reports/ai_weekly_summary/send")
            again = client.post(f"/v1/users/{test_user.id}/reports/ai_weekly_summary/send")

        assert sent.json()["status"] == "sent"
        assert again.json()["reason"] == "already_sent"
        assert send.call_count == 1

        status = client.get(f"/v1/users/{test_user.id}/reports/ai_weekly_summary/status").json()
        assert status["last_sent_week"] == sent.json()["week_key"]
        assert status["state"] == "sent"
        assert status["is_due"] is False

    def test_failed_send_then_retry(self, client, test_user):
        with patch("services.email_service.email_service.send_weekly_summary", side_effect=[False, True]):
            failed = client.post(f"/v1/users/{test_user.id}/reports/weekly_summary/send")
            status = client.get(f"/v1/users/{test_user.id}/reports/weekly_summary/status").json()
            retried = client.post(f"/v1/users/{test_user.id}/reports/weekly_summary/retry")

        assert failed.json()["status"] == "error"
        assert status["state"] == "error"
        assert status["last_error"] == "delivery_failed"
        assert retried.json()["status"] == "sent"

    def test_opted_out_user_is_skipped(self, client, db_session, test_user):
        test_user.weekly_reports = False
        db_session.commit()

        response = client.post(f"/v1/users/{test_user.id}/reports/weekly_summary/send")

        assert response.json() == {"stream": "weekly_summary", "status": "skipped", "reason": "opted_out", "week_key": None}

    def test_trigger_queues_bulk_run(self, client):
        task = MagicMock(id="task-123")
        with patch("tasks.report_tasks.send_all_weekly_reports_task.delay", return_value=task) as delay:
            response = client.post("/v1/reports/trigger")

        assert response.status_code == 202
        assert response.json() == {"status": "queued", "task_id": "task-123"}
        delay.assert_called_once_with(force=True)
