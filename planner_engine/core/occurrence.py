from __future__ import annotations

from datetime import date, timedelta

from planner_engine.core.dates import months_between, shift_months, sunday_weekday, to_day
from planner_engine.core.models import CycleRule, HabitRule

_MONTHS_PER_UNIT = {"month": 1, "year": 12}
_DAYS_PER_UNIT = {"day": 1, "week": 7}


def is_target_day(rule: HabitRule, day: object) -> bool:
    """Whether the habit is due on ``day``.

    A ``weekly`` habit with no selected weekdays never occurs. Unknown
    frequencies fall through to every day.
    """
    value = to_day(day)
    if value is None:
        return False
    weekday = sunday_weekday(value)
    if rule.frequency == "daily":
        return True
    if rule.frequency == "weekdays":
        return 1 <= weekday <= 5
    if rule.frequency == "weekends":
        return weekday in (0, 6)
    if rule.frequency == "weekly":
        return weekday in rule.target_weekdays
    return True


def has_repeat(rule: CycleRule) -> bool:
    return rule.repeat_interval > 0 and (rule.repeat_unit in _DAYS_PER_UNIT or rule.repeat_unit in _MONTHS_PER_UNIT)


def next_occurrence(rule: CycleRule, today: object) -> date | None:
    """Next occurrence on or after ``today``.

    One-time rules return the target date unchanged, even when it is already
    past; callers decide what a past one-time event means.
    """
    target = to_day(rule.target_date)
    current = to_day(today)
    if target is None or current is None:
        return None
    if not has_repeat(rule) or target >= current:
        return target
    unit = rule.repeat_unit
    interval = rule.repeat_interval
    if unit in _DAYS_PER_UNIT:
        step_days = interval * _DAYS_PER_UNIT[unit]
        steps = -(-(current - target).days // step_days)
        try:
            return target + timedelta(days=steps * step_days)
        except OverflowError:
            return None
    step_months = interval * _MONTHS_PER_UNIT[unit]
    step = max(0, months_between(target, current) // step_months)
    candidate = shift_months(target, step * step_months)
    while candidate is not None and candidate < current:
        step += 1
        candidate = shift_months(target, step * step_months)
    return candidate


def days_until(rule: CycleRule, today: object) -> int | None:
    current = to_day(today)
    upcoming = next_occurrence(rule, current)
    if current is None or upcoming is None:
        return None
    return (upcoming - current).days
