"""
Coach Reminders

Goal-progress nudges on a fixed weekly rhythm (user-local time):

- weekdays at 08:xx: motivation for every goal under 80% distance progress
- Wednesday at 18:xx: mid-week goal check for every goal
- Sunday at 19:xx: one weekly-summary prompt

Goals are per activity kind; current progress comes from this week's
activities.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List

from models import UserActivity
from services.reminder_checker import NotificationDraft
from services.weekly_aggregator import round_half_up

MOTIVATION_HOUR = 8
GOAL_CHECK_WEEKDAY = 2  # Wednesday (Monday = 0)
GOAL_CHECK_HOUR = 18
SUMMARY_WEEKDAY = 6  # Sunday
SUMMARY_HOUR = 19
MOTIVATION_PROGRESS_CUTOFF = 80

GOAL_LABELS = {
    "run": "running",
    "ride": "cycling",
    "swim": "swimming",
    "workout": "training",
}


@dataclass
class WeeklyGoal:
    activity_type: str
    target_distance: float  # km
    target_sessions: int
    current_distance: float = 0.0
    current_sessions: int = 0

    @property
    def label(self) -> str:
        return GOAL_LABELS.get(self.activity_type, self.activity_type)

    @property
    def distance_progress(self) -> float:
        if not self.target_distance:
            return 100.0
        return self.current_distance / self.target_distance * 100

    @property
    def session_progress(self) -> float:
        if not self.target_sessions:
            return 100.0
        return self.current_sessions / self.target_sessions * 100


DEFAULT_GOALS = (
    WeeklyGoal(activity_type="run", target_distance=25, target_sessions=3),
    WeeklyGoal(activity_type="ride", target_distance=50, target_sessions=2),
)


def goals_with_progress(
    activities: Iterable[UserActivity],
    goals: Iterable[WeeklyGoal] = DEFAULT_GOALS,
) -> List[WeeklyGoal]:
    distance: Dict[str, float] = {}
    sessions: Dict[str, int] = {}
    for a in activities:
        distance[a.activity_type] = distance.get(a.activity_type, 0.0) + (a.distance or 0)
        sessions[a.activity_type] = sessions.get(a.activity_type, 0) + 1

    return [
        WeeklyGoal(
            activity_type=g.activity_type,
            target_distance=g.target_distance,
            target_sessions=g.target_sessions,
            current_distance=distance.get(g.activity_type, 0.0),
            current_sessions=sessions.get(g.activity_type, 0),
        )
        for g in goals
    ]


def motivational_message(goal: WeeklyGoal) -> str:
    progress = goal.distance_progress
    if progress < 30:
        return f"Time to lace up! You're just getting started with your {goal.label} goal. Every step counts! 🏃‍♂️"
    if progress < 70:
        return f"Great progress on your {goal.label}! You're {round_half_up(progress)}% there. Keep the momentum going! 💪"
    if progress < 100:
        remaining = goal.target_distance - goal.current_distance
        return f"So close to your {goal.label} goal! Just {remaining:.1f}km to go. You've got this! 🎯"
    return f"Amazing! You've crushed your {goal.label} goal this week! Time to celebrate and set new challenges! 🏆"


def reminder_title(goal: WeeklyGoal) -> str:
    progress = goal.distance_progress
    if progress < 50:
        return f"AI Coach: Time for {goal.label}!"
    if progress < 90:
        return f"AI Coach: Almost there with {goal.label}!"
    return f"AI Coach: Final push for {goal.label}!"


def _goal_reminder(goal: WeeklyGoal, kind: str, local_now: datetime) -> NotificationDraft:
    return NotificationDraft(
        title=reminder_title(goal),
        message=motivational_message(goal),
        type=kind,
        timestamp=local_now,
        activity_type=goal.activity_type,
    )


def coach_reminders(goals: Iterable[WeeklyGoal], local_now: datetime) -> List[NotificationDraft]:
    """Reminders due at this hour. Call at most once per hour per user."""
    goals = list(goals)
    weekday, hour = local_now.weekday(), local_now.hour
    drafts: List[NotificationDraft] = []

    if hour == MOTIVATION_HOUR and weekday < 5:
        drafts += [
            _goal_reminder(g, "motivation", local_now)
            for g in goals
            if g.distance_progress < MOTIVATION_PROGRESS_CUTOFF
        ]

    if weekday == GOAL_CHECK_WEEKDAY and hour == GOAL_CHECK_HOUR:
        drafts += [_goal_reminder(g, "goal_check", local_now) for g in goals]

    if weekday == SUMMARY_WEEKDAY and hour == SUMMARY_HOUR:
        drafts.append(
            NotificationDraft(
                title="AI Coach: Weekly Summary",
                message="Great week! Let's review your progress and plan for next week. Ready to set new goals? 📊",
                type="weekly_summary",
                timestamp=local_now,
            )
        )

    return drafts
