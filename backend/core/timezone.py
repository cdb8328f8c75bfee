"""Date helpers anchored to the dining halls' local timezone.

Menu dates are calendar dates in the reference timezone, never UTC, so "today"
does not flip to tomorrow in the evening or skip a day across DST changes.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from core.config import settings


def reference_zone() -> ZoneInfo:
    return ZoneInfo(settings.reference_timezone)


def now_local() -> datetime:
    return datetime.now(reference_zone())


def today_local() -> date:
    return now_local().date()


def shift_days(day: date, offset: int) -> date:
    return day + timedelta(days=offset)


def format_vendor_date(day: date) -> str:
    """FoodPro expects M/D/YYYY without zero padding."""
    return f"{day.month}/{day.day}/{day.year}"
