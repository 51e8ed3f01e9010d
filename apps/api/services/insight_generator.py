"""
Insight Generator

Maps a WeeklySummary to canned coaching messages. Each message family is an
ordered table of (predicate, message) rows evaluated top-down; the first
matching row wins. The last row of every table always matches.
"""

from dataclasses import asdict, dataclass
from typing import Callable, Sequence, Tuple

from services.weekly_aggregator import WeeklySummary

Rule = Tuple[Callable[[float], bool], str]


# AI weekly summary stream
CONSISTENCY_RULES: Sequence[Rule] = (
    (lambda days: days >= 6, "🔥 Amazing consistency! You're absolutely crushing it! Your dedication is inspiring!"),
    (lambda days: days >= 4, "💪 Great consistency! Push for 6 days next week to reach elite athlete level!"),
    (lambda days: days >= 2, "👍 Good foundation! Aim for 4-5 workout days next week to build unstoppable momentum!"),
    (lambda days: True, "🎯 Every champion starts somewhere! Let's target 3 solid workout days next week!"),
)

PERFORMANCE_RULES: Sequence[Rule] = (
    (lambda avg: avg > 45, "🏆 Your workout intensity is phenomenal! You're building serious athletic endurance."),
    (lambda avg: avg > 30, "⚡ Solid training sessions! Consider adding 10-15 more minutes for explosive results."),
    (lambda avg: True, "🌟 Great start! Extend to 30+ minutes per session to unlock your full potential."),
)

CALORIE_RULES: Sequence[Rule] = (
    (lambda cal: cal > 2000, "🔥 You torched over 2000 calories this week! Your metabolism is thanking you!"),
    (lambda cal: cal > 1000, "💪 Great calorie burn! Push past 2000 next week for maximum fat-burning benefits!"),
    (lambda cal: True, "🎯 Every calorie burned counts! Aim for 1500+ calories next week to accelerate results!"),
)

# Plain weekly summary stream
CONSISTENCY_MESSAGE_RULES: Sequence[Rule] = (
    (lambda days: days >= 6, "🔥 Amazing consistency! You're on fire! Keep this incredible momentum going next week!"),
    (lambda days: days >= 4, "💪 Great consistency! Push for 6 days next week to reach elite level!"),
    (lambda days: days >= 2, "👍 Good start! Aim for 4-5 workout days next week to build stronger habits!"),
    (lambda days: True, "🎯 Every journey starts with a single step! Let's aim for 3 workout days next week!"),
)

PERFORMANCE_MESSAGE_RULES: Sequence[Rule] = (
    (lambda avg: avg > 45, "🏆 Your workout intensity is impressive! You're building serious endurance."),
    (lambda avg: avg > 30, "⚡ Solid workout sessions! Consider adding 10-15 more minutes for even better results."),
    (lambda avg: True, "🌟 Great start! Try extending your sessions to 30+ minutes for optimal benefits."),
)

MAX_WEEKLY_SCORE = 100


@dataclass(frozen=True)
class InsightBundle:
    consistency_insight: str
    performance_insight: str
    motivational_message: str
    weekly_score: float  # [0, 100], rounded only for display

    def to_dict(self) -> dict:
        return asdict(self)


def first_match(rules: Sequence[Rule], value: float) -> str:
    for predicate, message in rules:
        if predicate(value):
            return message
    raise ValueError("rule table has no catch-all row")


def average_duration(summary: WeeklySummary) -> float:
    """Minutes per workout; 0 when there were no workouts."""
    if not summary.total_workouts:
        return 0.0
    return summary.total_duration / summary.total_workouts


def weekly_score(summary: WeeklySummary) -> float:
    raw = (
        summary.workout_days * 15
        + summary.total_duration / 10
        + summary.total_calories / 50
    )
    return min(MAX_WEEKLY_SCORE, raw)


def generate_insights(summary: WeeklySummary) -> InsightBundle:
    return InsightBundle(
        consistency_insight=first_match(CONSISTENCY_RULES, summary.workout_days),
        performance_insight=first_match(PERFORMANCE_RULES, average_duration(summary)),
        motivational_message=first_match(CALORIE_RULES, summary.total_calories),
        weekly_score=weekly_score(summary),
    )


def get_consistency_message(workout_days: int) -> str:
    return first_match(CONSISTENCY_MESSAGE_RULES, workout_days)


def get_performance_insight(summary: WeeklySummary) -> str:
    return first_match(PERFORMANCE_MESSAGE_RULES, average_duration(summary))


def get_ai_focus_area(summary: WeeklySummary) -> str:
    """Single focus recommendation for the AI next-week goals block."""
    if summary.consistency_percentage < 50:
        return "Build consistency - aim for regular workout schedule"
    if average_duration(summary) < 30:
        return "Increase workout duration for better results"
    if summary.total_calories < 1500:
        return "Boost intensity to maximize calorie burn"
    return "Maintain excellence and push new boundaries"
