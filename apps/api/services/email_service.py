"""
Email Service

Sends weekly summary emails through the EmailJS REST API.

Two templates exist: the plain weekly summary and the AI-flavored summary
(insights + score). When email is disabled the report is rendered to the log
instead and the send counts as delivered.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from core.config import settings
from services.insight_generator import (
    InsightBundle,
    get_ai_focus_area,
    get_consistency_message,
    get_performance_insight,
)
from services.weekly_aggregator import WeeklySummary, round_half_up
import logging

logger = logging.getLogger(__name__)


@dataclass
class ActivityLine:
    date: date
    type: str
    duration: int
    calories: int
    distance: Optional[float] = None


@dataclass
class WeeklyEmailData:
    """Everything one weekly email needs: recipient, week, summary, insights."""
    user_email: str
    user_name: str
    week_number: int
    year: int
    summary: WeeklySummary
    activities: List[ActivityLine] = field(default_factory=list)
    ai_insights: Optional[InsightBundle] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "user_email": self.user_email,
            "user_name": self.user_name,
            "week_number": self.week_number,
            "year": self.year,
            **self.summary.to_dict(),
            "activities": [
                {
                    "date": a.date.isoformat(),
                    "type": a.type,
                    "duration": a.duration,
                    "distance": a.distance,
                    "calories": a.calories,
                }
                for a in self.activities
            ],
        }
        if self.ai_insights is not None:
            data["ai_insights"] = self.ai_insights.to_dict()
        return data


def format_duration(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m" if hours > 0 else f"{mins}m"


def format_number(value: float) -> str:
    """Thousands separators, no trailing zeros (1180 -> '1,180')."""
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,}"


def format_activities_list(activities: List[ActivityLine]) -> str:
    lines = []
    for activity in activities:
        day = f"{activity.date:%a}, {activity.date:%b} {activity.date.day}"
        distance = f" - {activity.distance:g}km" if activity.distance else ""
        lines.append(
            f"• {activity.type.capitalize()} on {day}: "
            f"{format_duration(activity.duration)}{distance} ({activity.calories} cal)"
        )
    return "\n".join(lines)


def generate_next_week_goals(data: WeeklyEmailData) -> str:
    s = data.summary
    target_days = max(s.workout_days + 1, 5)
    target_duration = max(s.total_duration + 60, 300)
    target_calories = max(s.total_calories + 500, 2000)

    return (
        f"🎯 Target: {target_days} workout days\n"
        f"⏱️ Duration: {format_duration(target_duration)} total\n"
        f"🔥 Calories: {format_number(target_calories)} calories\n"
        f"📈 Consistency: Beat {s.consistency_percentage}%"
    )


def generate_ai_next_week_goals(data: WeeklyEmailData) -> str:
    s = data.summary
    score = data.ai_insights.weekly_score if data.ai_insights else 0
    target_days = min(7, max(s.workout_days + 1, 5))
    target_duration = max(s.total_duration + 90, 350)
    target_calories = max(s.total_calories + 750, 2500)
    target_score = min(100, score + 15)

    return (
        "🎯 AI Recommended Targets:\n"
        f"📅 Workout Days: {target_days} days (consistency is key!)\n"
        f"⏱️ Total Duration: {format_duration(target_duration)}\n"
        f"🔥 Calories: {format_number(target_calories)} calories\n"
        f"🏆 Performance Score: {round_half_up(target_score)}/100\n"
        f"💪 Focus: {get_ai_focus_area(s)}"
    )


def ai_email_subject(data: WeeklyEmailData) -> str:
    return (
        f"🤖 AI Weekly Summary: {data.summary.consistency_percentage}% Consistency "
        f"- Week {data.week_number}"
    )


def render_text_report(data: WeeklyEmailData) -> str:
    """Plain-text rendering used for log-only delivery."""
    s = data.summary
    rule = "=" * 50
    lines = [
        "📧 WEEKLY EMAIL REPORT 📧",
        rule,
        f"To: {data.user_email}",
        f"Name: {data.user_name}",
        rule,
        "📊 WEEKLY STATS:",
        f"• Total Workouts: {s.total_workouts}",
        f"• Total Duration: {s.total_duration // 60}h {s.total_duration % 60}m",
        f"• Total Calories: {format_number(s.total_calories)}",
        f"• Total Distance: {s.total_distance:.1f} km",
        f"• Workout Days: {s.workout_days}/7",
        f"• Consistency: {s.consistency_percentage}%",
        rule,
    ]
    if data.ai_insights is not None:
        lines += [
            "🤖 AI INSIGHTS:",
            f"• Consistency: {data.ai_insights.consistency_insight}",
            f"• Performance: {data.ai_insights.performance_insight}",
            f"• Motivation: {data.ai_insights.motivational_message}",
            f"• Weekly Score: {round_half_up(data.ai_insights.weekly_score)}/100",
            rule,
        ]
    lines.append("📅 ACTIVITIES THIS WEEK:")
    if data.activities:
        lines.append(format_activities_list(data.activities))
    lines.append(rule)
    return "\n".join(lines)


class EmailService:
    """Service for sending weekly summary emails via EmailJS"""

    def __init__(self):
        self.api_endpoint = settings.EMAILJS_API_ENDPOINT
        self.service_id = settings.EMAILJS_SERVICE_ID
        self.public_key = settings.EMAILJS_PUBLIC_KEY
        self.weekly_template_id = settings.EMAILJS_WEEKLY_TEMPLATE_ID
        self.ai_weekly_template_id = settings.EMAILJS_AI_WEEKLY_TEMPLATE_ID
        self.timeout_s = settings.EMAIL_SEND_TIMEOUT_S
        self.enabled = settings.EMAIL_ENABLED

    def _base_params(self, data: WeeklyEmailData) -> Dict[str, Any]:
        s = data.summary
        return {
            "to_email": data.user_email,
            "to_name": data.user_name,
            "week_number": data.week_number,
            "year": data.year,
            "total_workouts": s.total_workouts,
            "total_duration": format_duration(s.total_duration),
            "total_calories": format_number(s.total_calories),
            "workout_days": s.workout_days,
            "consistency_percentage": s.consistency_percentage,
            "activities_list": format_activities_list(data.activities),
        }

    def build_weekly_params(self, data: WeeklyEmailData) -> Dict[str, Any]:
        params = self._base_params(data)
        params.update({
            "consistency_message": get_consistency_message(data.summary.workout_days),
            "performance_insight": get_performance_insight(data.summary),
            "next_week_goals": generate_next_week_goals(data),
        })
        return params

    def build_ai_weekly_params(self, data: WeeklyEmailData) -> Dict[str, Any]:
        insights = data.ai_insights
        params = self._base_params(data)
        params.update({
            "weekly_score": insights.weekly_score if insights else 0,
            "ai_consistency_insight": insights.consistency_insight if insights else "",
            "ai_performance_insight": insights.performance_insight if insights else "",
            "ai_motivational_message": insights.motivational_message if insights else "",
            "next_week_goals": generate_ai_next_week_goals(data),
            "email_subject": ai_email_subject(data),
        })
        return params

    def send_weekly_summary(self, data: WeeklyEmailData) -> bool:
        return self._deliver(data, self.weekly_template_id, self.build_weekly_params(data))

    def send_ai_weekly_summary(self, data: WeeklyEmailData) -> bool:
        return self._deliver(data, self.ai_weekly_template_id, self.build_ai_weekly_params(data))

    def _deliver(self, data: WeeklyEmailData, template_id: str, params: Dict[str, Any]) -> bool:
        """
        POST one templated email.

        Returns True on a 2xx response, False on any other status, transport
        error or timeout.
        """
        if not self.enabled:
            logger.info(f"Email disabled, logging weekly report for {data.user_email}\n{render_text_report(data)}")
            return True

        body = {
            "service_id": self.service_id,
            "template_id": template_id,
            "user_id": self.public_key,
            "template_params": params,
        }
        try:
            response = requests.post(
                self.api_endpoint,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.Timeout:
            logger.error(f"Timed out after {self.timeout_s}s sending {template_id} to {data.user_email}")
            return False
        except requests.RequestException as e:
            logger.error(f"Error sending {template_id} to {data.user_email}: {str(e)}")
            return False

        if not response.ok:
            logger.error(
                f"EmailJS rejected {template_id} for {data.user_email}: "
                f"{response.status_code} {response.text[:200]}"
            )
            return False

        logger.info(f"Sent {template_id} to {data.user_email}")
        return True


# Singleton instance
email_service = EmailService()
