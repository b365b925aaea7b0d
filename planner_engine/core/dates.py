from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta

# Host local wall clock only: every datetime handled here is naive local time.


def to_day(value: object) -> date | None:
    """Normalize a date-like value to a calendar day; None when it cannot be parsed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000).date()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return datetime.fromisoformat(trimmed).date()
        except ValueError:
            pass
        try:
            return datetime.strptime(trimmed[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


def to_time(value: object) -> time | None:
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
        return parsed.time().replace(second=0, microsecond=0)
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return to_time(datetime.fromisoformat(trimmed))
        except ValueError:
            pass
        try:
            return datetime.strptime(trimmed, "%H:%M").time()
        except ValueError:
            return None
    return None


def combine_local(target_date: date, target_time: time | None) -> datetime:
    return datetime.combine(target_date, target_time or time.min)


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def sunday_weekday(day: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6."""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    total = (month - 1) + months
    year += total // 12
    month = (total % 12) + 1
    return year, month


def clamped_date(year: int, month: int, day_of_month: int) -> date:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day_of_month, last_day))


def shift_months(anchor: date, months: int, day_of_month: int | None = None) -> date | None:
    """Anchor shifted by whole months, clamped to the target month's last day."""
    year, month = add_months(anchor.year, anchor.month, months)
    if not 1 <= year <= 9999:
        return None
    return clamped_date(year, month, day_of_month or anchor.day)


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        if current == date.max:
            return
        current += timedelta(days=1)
