"""
Tests for reminder rule matching and coach goal reminders.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from services.coach_reminders import (
    DEFAULT_GOALS,
    WeeklyGoal,
    coach_reminders,
    goals_with_progress,
    motivational_message,
    reminder_title,
)
from services.reminder_checker import (
    check_reminders,
    format_days,
    format_time,
    is_valid_time,
    rule_matches,
)

# Monday 17 Feb 2025
MONDAY_7AM = datetime(2025, 2, 17, 7, 0)


def _rule(time="07:00", days=("monday",), is_active=True, activity_type="run", title="Morning run"):
    return SimpleNamespace(
        id="rule-1",
        title=title,
        activity_type=activity_type,
        time=time,
        days=list(days),
        is_active=is_active,
    )


class TestRuleMatching:
    def test_fires_on_exact_minute_and_weekday(self):
        assert rule_matches(_rule(), MONDAY_7AM)

    def test_seconds_within_the_minute_still_match(self):
        assert rule_matches(_rule(), MONDAY_7AM.replace(second=42))

    def test_no_match_one_minute_late(self):
        assert not rule_matches(_rule(), datetime(2025, 2, 17, 7, 1))

    def test_no_match_on_other_weekday(self):
        assert not rule_matches(_rule(), datetime(2025, 2, 18, 7, 0))

    def test_inactive_rule_never_fires(self):
        assert not rule_matches(_rule(is_active=False), MONDAY_7AM)

    def test_check_emits_one_notification_per_matching_rule(self):
        rules = [
            _rule(),
            _rule(title="Stretch", activity_type="yoga"),
            _rule(time="07:30"),
            _rule(days=("tuesday",)),
        ]
        drafts = check_reminders(rules, MONDAY_7AM)

        assert [d.title for d in drafts] == ["Morning run", "Stretch"]
        assert drafts[0].type == "reminder"
        assert drafts[0].message == "Time for your run! 🏃‍♂️ Scheduled for 7:00 AM."
        assert drafts[0].timestamp == MONDAY_7AM
        assert drafts[1].activity_type == "yoga"

    def test_malformed_rule_is_skipped(self):
        broken = _rule()
        broken.days = 5
        drafts = check_reminders([broken, _rule()], MONDAY_7AM)
        assert len(drafts) == 1


class TestFormatting:
    @pytest.mark.parametrize(
        "value,expected",
        [("07:00", "7:00 AM"), ("00:15", "12:15 AM"), ("12:00", "12:00 PM"), ("18:30", "6:30 PM")],
    )
    def test_format_time(self, value, expected):
        assert format_time(value) == expected

    def test_format_days(self):
        assert format_days(["monday", "wednesday", "friday"]) == "Mon, Wed, Fri"

    @pytest.mark.parametrize(
        "value,expected",
        [("07:00", True), ("23:59", True), ("24:00", False), ("7:00", False), ("07:60", False), (None, False)],
    )
    def test_is_valid_time(self, value, expected):
        assert is_valid_time(value) is expected


def _activity(activity_type, distance):
    return SimpleNamespace(activity_type=activity_type, distance=distance, activity_date=date(2025, 2, 17))


class TestCoachReminders:
    def test_progress_from_this_weeks_activities(self):
        goals = goals_with_progress([_activity("run", 5), _activity("run", 7.5), _activity("swim", 1)])
        run, ride = goals

        assert run.current_distance == 12.5
        assert run.current_sessions == 2
        assert run.distance_progress == 50
        assert ride.current_sessions == 0
        assert ride.distance_progress == 0

    def test_zero_target_counts_as_done(self):
        assert WeeklyGoal(activity_type="swim", target_distance=0, target_sessions=0).distance_progress == 100

    @pytest.mark.parametrize(
        "distance,fragment",
        [
            (2, "just getting started"),
            (12.5, "50% there"),
            (22, "Just 3.0km to go"),
            (30, "crushed your running goal"),
        ],
    )
    def test_motivational_message_tiers(self, distance, fragment):
        goal = WeeklyGoal(activity_type="run", target_distance=25, target_sessions=3, current_distance=distance)
        assert fragment in motivational_message(goal)

    def test_half_percent_progress_rounds_up(self):
        goal = WeeklyGoal(activity_type="run", target_distance=4, target_sessions=3, current_distance=2.5)
        assert "62.5" not in motivational_message(goal)
        assert "63% there" in motivational_message(goal)

    def test_titles(self):
        goal = WeeklyGoal(activity_type="ride", target_distance=50, target_sessions=2, current_distance=10)
        assert reminder_title(goal) == "AI Coach: Time for cycling!"
        goal.current_distance = 40
        assert reminder_title(goal) == "AI Coach: Almost there with cycling!"
        goal.current_distance = 48
        assert reminder_title(goal) == "AI Coach: Final push for cycling!"

    def test_weekday_morning_motivation_skips_nearly_done_goals(self):
        goals = goals_with_progress([_activity("run", 24)])  # run 96%, ride 0%
        drafts = coach_reminders(goals, datetime(2025, 2, 17, 8, 0))

        assert [d.activity_type for d in drafts] == ["ride"]
        assert drafts[0].type == "motivation"

    def test_no_morning_motivation_at_weekends(self):
        assert coach_reminders(goals_with_progress([]), datetime(2025, 2, 22, 8, 0)) == []

    def test_wednesday_goal_check_covers_every_goal(self):
        drafts = coach_reminders(goals_with_progress([]), datetime(2025, 2, 19, 18, 0))
        assert [d.type for d in drafts] == ["goal_check"] * len(DEFAULT_GOALS)

    def test_sunday_summary_prompt(self):
        drafts = coach_reminders(goals_with_progress([]), datetime(2025, 2, 16, 19, 0))
        assert len(drafts) == 1
        assert drafts[0].type == "weekly_summary"
        assert drafts[0].title == "AI Coach: Weekly Summary"

    def test_quiet_hours(self):
        assert coach_reminders(goals_with_progress([]), datetime(2025, 2, 18, 13, 0)) == []
