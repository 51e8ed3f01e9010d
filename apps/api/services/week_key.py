"""
Week numbering for report markers.

Two schemes are supported:

- ``legacy``: ceil((days_since_jan1 + jan1_weekday + 1) / 7) with Sunday = 0.
  This is what existing stored markers were written with. It is not ISO 8601
  and can disagree with it around year boundaries (a late-December date can be
  week 53 of its calendar year while ISO calls it week 1 of the next).
- ``iso``: ISO 8601 week and week-based year from ``date.isocalendar()``.

The marker key format is ``"{year}-W{week}"`` without zero padding.
"""

import math
import re
from datetime import date, datetime, time
from typing import Optional, Tuple, Union

from core.config import settings

WEEK_KEY_PATTERN = re.compile(r"^\d{4}-W\d{1,2}$")

DateLike = Union[date, datetime]


def js_weekday(d: DateLike) -> int:
    """Weekday with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def legacy_week_number(moment: DateLike) -> int:
    """Week number using the legacy formula (fractional days since Jan 1 00:00)."""
    if isinstance(moment, datetime):
        jan1 = datetime.combine(date(moment.year, 1, 1), time(0, 0), tzinfo=moment.tzinfo)
        past_days = (moment - jan1).total_seconds() / 86400
    else:
        jan1 = date(moment.year, 1, 1)
        past_days = (moment - jan1).days
    return math.ceil((past_days + js_weekday(jan1) + 1) / 7)


def week_parts(moment: DateLike, numbering: Optional[str] = None) -> Tuple[int, int]:
    """Return (year, week_number) under the configured numbering scheme."""
    numbering = numbering or settings.WEEK_NUMBERING
    if numbering == "iso":
        iso_year, iso_week, _ = moment.isocalendar()
        return iso_year, iso_week
    return moment.year, legacy_week_number(moment)


def week_key(moment: DateLike, numbering: Optional[str] = None) -> str:
    year, week = week_parts(moment, numbering)
    return f"{year}-W{week}"


def is_valid_week_key(value) -> bool:
    return isinstance(value, str) and bool(WEEK_KEY_PATTERN.match(value))
