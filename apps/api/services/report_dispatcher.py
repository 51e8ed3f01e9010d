"""
Weekly Report Dispatcher

Decides once per user, per report stream, per calendar week whether a weekly
report is due, builds it and hands it to email delivery.

State machine per (stream, user):

    idle -> analyzing -> sending -> sent | error -> idle

``sent`` and ``error`` fall back to ``idle`` after DISPATCH_RESET_DELAY_S.
A dispatch is refused while the user is in ``analyzing`` or ``sending``.

Exactly-once-per-week is enforced by the last-sent marker: it is written only
after a successful send, and the read / decide / send / write sequence runs
inside the marker store's per-stream lock so two workers cannot both see a
stale marker.
"""

import logging
import threading
import zoneinfo
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.config import settings
from models import User, UserActivity
from services.email_service import ActivityLine, WeeklyEmailData, email_service
from services.insight_generator import generate_insights
from services.marker_store import InMemoryMarkerStore, MarkerStore, get_marker_store
from services.week_key import js_weekday, week_key, week_parts
from services.weekly_aggregator import WeeklySummary, get_week_start, load_week

logger = logging.getLogger(__name__)

WeekLoader = Callable[[Session, UUID, date], Tuple[List[UserActivity], WeeklySummary]]
Sender = Callable[[WeeklyEmailData], bool]


class DispatchState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    SENDING = "sending"
    SENT = "sent"
    ERROR = "error"


BUSY_STATES = {DispatchState.ANALYZING, DispatchState.SENDING}
SETTLED_STATES = {DispatchState.SENT, DispatchState.ERROR}


@dataclass(frozen=True)
class ReportStream:
    """One recurring report channel with its own last-sent marker."""
    name: str
    marker_key: str
    include_insights: bool
    send: Sender


@dataclass
class DispatchStatus:
    state: DispatchState = DispatchState.IDLE
    changed_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_week_key: Optional[str] = None


@dataclass
class DispatchResult:
    status: str  # "sent" | "error" | "skipped"
    reason: Optional[str] = None
    week_key: Optional[str] = None
    payload: Optional[WeeklyEmailData] = None

    @property
    def sent(self) -> bool:
        return self.status == "sent"


def to_local(now: datetime, tz_name: Optional[str]) -> datetime:
    """
    Convert an aware UTC instant to the user's wall clock.

    Naive datetimes are taken as already local. Unknown timezones fall back
    to DEFAULT_TIMEZONE.
    """
    if now.tzinfo is None:
        return now
    name = tz_name or settings.DEFAULT_TIMEZONE
    try:
        tz = zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using {settings.DEFAULT_TIMEZONE}")
        tz = zoneinfo.ZoneInfo(settings.DEFAULT_TIMEZONE)
    return now.astimezone(tz)


def in_send_window(local_now: datetime, send_weekday: int = None, send_hour: int = None) -> bool:
    """True on the send weekday (Sunday = 0) from ``send_hour`` until midnight."""
    send_weekday = settings.REPORT_SEND_WEEKDAY if send_weekday is None else send_weekday
    send_hour = settings.REPORT_SEND_HOUR if send_hour is None else send_hour
    return js_weekday(local_now) == send_weekday and local_now.hour >= send_hour


def is_due(
    local_now: datetime,
    last_sent_marker: Optional[str],
    send_weekday: int = None,
    send_hour: int = None,
    numbering: str = None,
) -> bool:
    return (
        in_send_window(local_now, send_weekday, send_hour)
        and week_key(local_now, numbering) != last_sent_marker
    )


def next_send_time(local_now: datetime, send_weekday: int = None, send_hour: int = None) -> datetime:
    """Next send-window opening; today if it is the send day and before the hour."""
    send_weekday = settings.REPORT_SEND_WEEKDAY if send_weekday is None else send_weekday
    send_hour = settings.REPORT_SEND_HOUR if send_hour is None else send_hour

    days_ahead = (send_weekday - js_weekday(local_now)) % 7
    if days_ahead == 0 and local_now.hour >= send_hour:
        days_ahead = 7
    target = local_now + timedelta(days=days_ahead)
    return target.replace(hour=send_hour, minute=0, second=0, microsecond=0)


def describe_time_until(local_now: datetime, send_weekday: int = None, send_hour: int = None) -> str:
    remaining = next_send_time(local_now, send_weekday, send_hour) - local_now
    if remaining.total_seconds() <= 0:
        return "soon"
    days = remaining.days
    hours = remaining.seconds // 3600
    hours_text = f"{hours} hour{'s' if hours > 1 else ''}"
    if days > 0:
        return f"in {days} day{'s' if days > 1 else ''} and {hours_text}"
    return f"in {hours_text}"


def build_payload(
    user: User,
    local_now: datetime,
    activities: List[UserActivity],
    summary: WeeklySummary,
    include_insights: bool,
    numbering: str = None,
) -> WeeklyEmailData:
    year, week_number = week_parts(local_now, numbering)
    return WeeklyEmailData(
        user_email=user.email,
        user_name=user.full_name,
        week_number=week_number,
        year=year,
        summary=summary,
        activities=[
            ActivityLine(
                date=a.activity_date,
                type=a.activity_type,
                duration=a.duration,
                distance=a.distance or None,
                calories=a.calories,
            )
            for a in activities
        ],
        ai_insights=generate_insights(summary) if include_insights else None,
    )


class ReportDispatcher:
    """Dispatches one report stream. Status is tracked per user in-process."""

    def __init__(
        self,
        stream: ReportStream,
        marker_store: Optional[MarkerStore] = None,
        week_loader: WeekLoader = load_week,
        reset_delay_s: Optional[int] = None,
        send_weekday: Optional[int] = None,
        send_hour: Optional[int] = None,
        numbering: Optional[str] = None,
    ):
        self.stream = stream
        self._injected_store = marker_store
        self._resolved_store: Optional[MarkerStore] = None
        self.week_loader = week_loader
        self.reset_delay = timedelta(
            seconds=settings.DISPATCH_RESET_DELAY_S if reset_delay_s is None else reset_delay_s
        )
        self.send_weekday = settings.REPORT_SEND_WEEKDAY if send_weekday is None else send_weekday
        self.send_hour = settings.REPORT_SEND_HOUR if send_hour is None else send_hour
        self.numbering = numbering or settings.WEEK_NUMBERING
        self._statuses: Dict[UUID, DispatchStatus] = {}
        self._guard = threading.Lock()

    @property
    def marker_store(self) -> MarkerStore:
        """
        The injected store, else the shared one.

        A process-local fallback is re-resolved on every access so the
        dispatcher moves to Redis once it becomes reachable.
        """
        if self._injected_store is not None:
            return self._injected_store
        if self._resolved_store is None or isinstance(self._resolved_store, InMemoryMarkerStore):
            self._resolved_store = get_marker_store()
        return self._resolved_store

    # --- status -------------------------------------------------------------

    def status_for(self, user_id: UUID, now: datetime) -> DispatchStatus:
        """Current status, applying the settle -> idle auto-reset."""
        with self._guard:
            status = self._statuses.setdefault(user_id, DispatchStatus())
            if (
                status.state in SETTLED_STATES
                and status.changed_at is not None
                and now - status.changed_at >= self.reset_delay
            ):
                status.state = DispatchState.IDLE
                status.changed_at = now
            return status

    def _transition(self, user_id: UUID, state: DispatchState, now: datetime, error: str = None) -> None:
        with self._guard:
            status = self._statuses.setdefault(user_id, DispatchStatus())
            status.state = state
            status.changed_at = now
            if state == DispatchState.ERROR:
                status.last_error = error
            elif state == DispatchState.SENT:
                status.last_error = None
        logger.debug(f"{self.stream.name} dispatcher for {user_id} -> {state.value}")

    def _claim(self, user_id: UUID, now: datetime) -> bool:
        """Atomically move a non-busy user into ``analyzing``."""
        with self._guard:
            status = self._statuses.setdefault(user_id, DispatchStatus())
            if status.state in BUSY_STATES:
                return False
            status.state = DispatchState.ANALYZING
            status.changed_at = now
            return True

    # --- scheduling ---------------------------------------------------------

    def last_sent_marker(self, user_id: UUID, store: Optional[MarkerStore] = None) -> Optional[str]:
        return (store or self.marker_store).get(self.stream.marker_key, user_id)

    def is_due(self, local_now: datetime, last_sent_marker: Optional[str]) -> bool:
        return is_due(local_now, last_sent_marker, self.send_weekday, self.send_hour, self.numbering)

    def run(self, db: Session, user: User, now: datetime, force: bool = False) -> DispatchResult:
        """
        Check and, when due, dispatch this stream's report for ``user``.

        ``force`` skips the send-window check (manual trigger, retry) but never
        the marker: a week that already has a successful send is not re-sent.
        """
        if not user.weekly_reports or not user.email_notifications:
            return DispatchResult(status="skipped", reason="opted_out")
        if not user.email:
            return DispatchResult(status="skipped", reason="no_email")

        local_now = to_local(now, user.timezone)
        current_key = week_key(local_now, self.numbering)

        status = self.status_for(user.id, now)
        if status.state in BUSY_STATES:
            return DispatchResult(status="skipped", reason="in_progress", week_key=current_key)

        store = self.marker_store
        with store.lock(self.stream.marker_key, user.id) as acquired:
            if not acquired:
                logger.info(f"{self.stream.name}: dispatch for {user.id} already running elsewhere")
                return DispatchResult(status="skipped", reason="locked", week_key=current_key)

            marker = self.last_sent_marker(user.id, store)
            # The in-process key covers a send whose marker write was lost.
            if current_key in (marker, status.last_week_key):
                return DispatchResult(status="skipped", reason="already_sent", week_key=current_key)
            if not force and not self.is_due(local_now, marker):
                return DispatchResult(status="skipped", reason="not_due", week_key=current_key)

            return self._dispatch(db, user, local_now, now, current_key, store)

    def retry(self, db: Session, user: User, now: datetime) -> DispatchResult:
        """Re-run a failed dispatch on demand. Only valid from ``error``."""
        if self.status_for(user.id, now).state != DispatchState.ERROR:
            return DispatchResult(status="skipped", reason="nothing_to_retry")
        return self.run(db, user, now, force=True)

    def _dispatch(
        self,
        db: Session,
        user: User,
        local_now: datetime,
        now: datetime,
        current_key: str,
        store: MarkerStore,
    ) -> DispatchResult:
        if not self._claim(user.id, now):
            return DispatchResult(status="skipped", reason="in_progress", week_key=current_key)

        try:
            week_start = get_week_start(local_now.date())
            activities, summary = self.week_loader(db, user.id, week_start)
            payload = build_payload(
                user, local_now, activities, summary, self.stream.include_insights, self.numbering
            )
        except Exception as e:
            logger.error(f"{self.stream.name}: failed to build report for {user.email}: {e}", exc_info=True)
            self._transition(user.id, DispatchState.ERROR, now, error=str(e))
            return DispatchResult(status="error", reason="build_failed", week_key=current_key)

        self._transition(user.id, DispatchState.SENDING, now)
        try:
            delivered = bool(self.stream.send(payload))
            error = None if delivered else "delivery_failed"
        except Exception as e:
            logger.error(f"{self.stream.name}: error sending to {user.email}: {e}")
            delivered, error = False, str(e)

        if not delivered:
            self._transition(user.id, DispatchState.ERROR, now, error=error)
            logger.warning(f"❌ {self.stream.name} failed for {user.email} ({current_key})")
            return DispatchResult(status="error", reason="delivery_failed", week_key=current_key, payload=payload)

        if not store.set(self.stream.marker_key, user.id, current_key):
            logger.error(
                f"{self.stream.name}: sent to {user.email} but could not persist {current_key}; "
                f"this process will not resend it"
            )
        self._transition(user.id, DispatchState.SENT, now)
        with self._guard:
            self._statuses[user.id].last_week_key = current_key
        logger.info(f"✅ {self.stream.name} sent to {user.email} ({current_key})")
        return DispatchResult(status="sent", week_key=current_key, payload=payload)


WEEKLY_SUMMARY_STREAM = ReportStream(
    name="weekly_summary",
    marker_key="lastWeeklyEmailSent",
    include_insights=False,
    send=lambda data: email_service.send_weekly_summary(data),
)

AI_WEEKLY_SUMMARY_STREAM = ReportStream(
    name="ai_weekly_summary",
    marker_key="lastAIWeeklyEmailSent",
    include_insights=True,
    send=lambda data: email_service.send_ai_weekly_summary(data),
)

STREAMS: Dict[str, ReportStream] = {
    WEEKLY_SUMMARY_STREAM.name: WEEKLY_SUMMARY_STREAM,
    AI_WEEKLY_SUMMARY_STREAM.name: AI_WEEKLY_SUMMARY_STREAM,
}

_dispatchers: Dict[str, ReportDispatcher] = {}


def get_dispatcher(stream_name: str) -> ReportDispatcher:
    """Process-wide dispatcher for a named stream (KeyError if unknown)."""
    stream = STREAMS[stream_name]
    if stream_name not in _dispatchers:
        _dispatchers[stream_name] = ReportDispatcher(stream)
    return _dispatchers[stream_name]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
