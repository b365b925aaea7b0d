"""Streaks and completion reports over habit target days.

The completion log is only read. All date bounds are inclusive calendar days.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from planner_engine.core.dates import iter_days, to_day, week_start
from planner_engine.core.models import CompletionLog, Habit
from planner_engine.core.occurrence import is_target_day
from planner_engine.core.periods import PERIOD_ORDER, current_period

MAX_STREAK_DAYS = 366


@dataclass(frozen=True)
class HabitStats:
    target_days: int
    completed: int
    rate: int


@dataclass(frozen=True)
class PeriodTotals:
    target: int = 0
    completed: int = 0


@dataclass(frozen=True)
class DayCompletion:
    day: date
    label: str
    target: int
    completed: int
    rate: int


@dataclass(frozen=True)
class HabitDetail:
    habit: Habit
    target: int
    completed: int
    rate: int
    streak: int


@dataclass(frozen=True)
class HabitReport:
    scope: str
    start: date
    end: date
    total_target: int
    total_completed: int
    rate: int
    by_habit: dict[str, int] = field(default_factory=dict)
    by_period: dict[str, PeriodTotals] = field(default_factory=dict)
    daily_completion: list[DayCompletion] = field(default_factory=list)
    habit_details: list[HabitDetail] = field(default_factory=list)


def streak(habit: Habit, log: CompletionLog, as_of_day: object) -> int:
    """Consecutive completed target days counted backward from ``as_of_day``.

    Non-target days are skipped without breaking the run. A missed
    ``as_of_day`` (when it is a target day) yields 0.
    """
    current = to_day(as_of_day)
    if current is None:
        return 0
    count = 0
    for _ in range(MAX_STREAK_DAYS):
        if is_target_day(habit.rule, current):
            if not log.is_completed(habit.id, current):
                break
            count += 1
        if current == date.min:
            break
        current -= timedelta(days=1)
    return count


def habit_stats(habit: Habit, log: CompletionLog, days: int = 30, today: object = None) -> HabitStats:
    end = to_day(today if today is not None else date.today())
    if end is None or days <= 0:
        return HabitStats(target_days=0, completed=0, rate=0)
    target, completed = _count(habit, log, end - timedelta(days=days - 1), end)
    return HabitStats(target_days=target, completed=completed, rate=_percent(completed, target))


def report_for_range(
    habits: Iterable[Habit],
    log: CompletionLog,
    start: object,
    end: object,
    scope: str = "range",
) -> HabitReport:
    habit_list = list(habits)
    first = to_day(start)
    last = to_day(end)
    if first is None or last is None or last < first:
        return HabitReport(scope=scope, start=first or date.min, end=last or date.min, total_target=0, total_completed=0, rate=0)

    by_habit: dict[str, int] = {}
    period_target: dict[str, int] = {}
    period_completed: dict[str, int] = {}
    daily: list[DayCompletion] = []
    total_target = 0
    total_completed = 0
    for day in iter_days(first, last):
        day_target = 0
        day_done = 0
        for habit in habit_list:
            if not is_target_day(habit.rule, day):
                continue
            day_target += 1
            period_target[habit.period] = period_target.get(habit.period, 0) + 1
            if log.is_completed(habit.id, day):
                day_done += 1
                by_habit[habit.id] = by_habit.get(habit.id, 0) + 1
                period_completed[habit.period] = period_completed.get(habit.period, 0) + 1
        total_target += day_target
        total_completed += day_done
        daily.append(
            DayCompletion(
                day=day,
                label=f"{day.month}/{day.day}",
                target=day_target,
                completed=day_done,
                rate=_percent(day_done, day_target),
            )
        )

    details: list[HabitDetail] = []
    for habit in habit_list:
        target, completed = _count(habit, log, first, last)
        details.append(
            HabitDetail(
                habit=habit,
                target=target,
                completed=completed,
                rate=_percent(completed, target),
                streak=streak(habit, log, last),
            )
        )

    by_period = {
        period: PeriodTotals(target=period_target[period], completed=period_completed.get(period, 0))
        for period in sorted(period_target, key=lambda name: PERIOD_ORDER.get(name, len(PERIOD_ORDER)))
    }
    return HabitReport(
        scope=scope,
        start=first,
        end=last,
        total_target=total_target,
        total_completed=total_completed,
        rate=_percent(total_completed, total_target),
        by_habit=by_habit,
        by_period=by_period,
        daily_completion=daily,
        habit_details=details,
    )


def weekly_report(habits: Iterable[Habit], log: CompletionLog, day: object) -> HabitReport:
    """Report for the ISO week (Monday to Sunday) containing ``day``."""
    value = to_day(day)
    if value is None:
        return report_for_range(habits, log, None, None, "week")
    monday = week_start(value)
    return report_for_range(habits, log, monday, monday + timedelta(days=6), "week")


def monthly_report(habits: Iterable[Habit], log: CompletionLog, year: int, month: int) -> HabitReport:
    first = date(year, month, 1)
    next_month = date(year + month // 12, month % 12 + 1, 1)
    return report_for_range(habits, log, first, next_month - timedelta(days=1), "month")


def yearly_report(habits: Iterable[Habit], log: CompletionLog, year: int) -> HabitReport:
    return report_for_range(habits, log, date(year, 1, 1), date(year, 12, 31), "year")


def current_period_habits(habits: Iterable[Habit], log: CompletionLog, now: datetime | None = None) -> list[Habit]:
    """Habits of the current period of day that are due today and still open."""
    moment = now or datetime.now()
    period = current_period(moment)
    today = moment.date()
    return [
        habit
        for habit in habits
        if habit.period == period and is_target_day(habit.rule, today) and not log.is_completed(habit.id, today)
    ]


def _count(habit: Habit, log: CompletionLog, start: date, end: date) -> tuple[int, int]:
    target = 0
    completed = 0
    for day in iter_days(start, end):
        if not is_target_day(habit.rule, day):
            continue
        target += 1
        if log.is_completed(habit.id, day):
            completed += 1
    return target, completed


def _percent(done: int, total: int) -> int:
    if not total:
        return 0
    return math.floor(done * 100 / total + 0.5)
