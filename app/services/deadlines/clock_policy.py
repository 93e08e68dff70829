"""Remaining-time arithmetic for deadline rules.

Every function returns ``None`` when the base timestamp is missing, which
means the rule does not apply. Remaining values are rounded up and go
negative once a deadline has passed, except the business-day variant,
which floors at zero.

Business days are approximated: N business days span
``round(N * 21 / 15)`` calendar days, and a calendar remainder converts
back with the inverse ratio. This is not a holiday-aware calendar.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)

CALENDAR_DAYS_IN_THREE_WEEKS = 21
BUSINESS_DAYS_IN_THREE_WEEKS = 15


def round_half_up(value: float) -> int:
    """Round halves up: 2.5 -> 3, 2.49 -> 2."""
    return math.floor(value + 0.5)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def business_to_calendar_days(business_days: int) -> int:
    return round_half_up(business_days * CALENDAR_DAYS_IN_THREE_WEEKS / BUSINESS_DAYS_IN_THREE_WEEKS)


def calendar_deadline(base: Optional[datetime], offset_days: int) -> Optional[datetime]:
    if base is None:
        return None
    return as_utc(base) + timedelta(days=offset_days)


def business_deadline(base: Optional[datetime], offset_business_days: int) -> Optional[datetime]:
    if base is None:
        return None
    return as_utc(base) + timedelta(days=business_to_calendar_days(offset_business_days))


def hours_deadline(base: Optional[datetime], offset_hours: int) -> Optional[datetime]:
    if base is None:
        return None
    return as_utc(base) + timedelta(hours=offset_hours)


def remaining_calendar_days(base: Optional[datetime], offset_days: int, now: datetime) -> Optional[int]:
    """ceil((base + offset_days - now) / 1 day)."""
    deadline = calendar_deadline(base, offset_days)
    if deadline is None:
        return None
    return math.ceil((deadline - as_utc(now)) / ONE_DAY)


def remaining_business_days_approx(
    base: Optional[datetime], offset_business_days: int, now: datetime
) -> Optional[int]:
    """Approximate business days left, never below zero."""
    deadline = business_deadline(base, offset_business_days)
    if deadline is None:
        return None
    calendar_remaining = math.ceil((deadline - as_utc(now)) / ONE_DAY)
    business_remaining = round_half_up(
        calendar_remaining * BUSINESS_DAYS_IN_THREE_WEEKS / CALENDAR_DAYS_IN_THREE_WEEKS
    )
    return max(0, business_remaining)


def remaining_hours(base: Optional[datetime], offset_hours: int, now: datetime) -> Optional[int]:
    """ceil((base + offset_hours - now) / 1 hour)."""
    deadline = hours_deadline(base, offset_hours)
    if deadline is None:
        return None
    return math.ceil((deadline - as_utc(now)) / ONE_HOUR)
