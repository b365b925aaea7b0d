from __future__ import annotations

from datetime import date, timedelta

from planner_engine.core.models import CycleRule, HabitRule
from planner_engine.core.occurrence import days_until, has_repeat, is_target_day, next_occurrence

MONDAY = date(2026, 3, 2)


def _week() -> list[date]:
    return [MONDAY + timedelta(days=offset) for offset in range(7)]


def test_habit_frequencies() -> None:
    daily = HabitRule(frequency="daily")
    weekdays = HabitRule(frequency="weekdays")
    weekends = HabitRule(frequency="weekends")
    weekly = HabitRule(frequency="weekly", target_weekdays=frozenset({3}))

    assert all(is_target_day(daily, day) for day in _week())
    assert [is_target_day(weekdays, day) for day in _week()] == [True] * 5 + [False] * 2
    assert [is_target_day(weekends, day) for day in _week()] == [False] * 5 + [True] * 2
    assert [day for day in _week() if is_target_day(weekly, day)] == [date(2026, 3, 4)]


def test_weekly_habit_without_weekdays_never_occurs() -> None:
    rule = HabitRule(frequency="weekly", target_weekdays=frozenset())

    assert not any(is_target_day(rule, day) for day in _week())


def test_habit_unparseable_day_is_not_target() -> None:
    assert is_target_day(HabitRule(frequency="daily"), "someday") is False


def test_one_time_rule_returns_target_even_when_past() -> None:
    rule = CycleRule(target_date=date(2020, 5, 1))

    assert next_occurrence(rule, date(2026, 3, 1)) == date(2020, 5, 1)
    assert days_until(rule, date(2020, 4, 29)) == 2
    assert has_repeat(rule) is False


def test_yearly_rule_next_occurrence() -> None:
    rule = CycleRule(target_date=date(2000, 7, 4), repeat_interval=1, repeat_unit="year")

    assert next_occurrence(rule, date(2026, 3, 1)) == date(2026, 7, 4)
    assert next_occurrence(rule, date(2026, 7, 4)) == date(2026, 7, 4)
    assert next_occurrence(rule, date(2026, 7, 5)) == date(2027, 7, 4)


def test_monthly_rule_clamps_to_month_end() -> None:
    rule = CycleRule(target_date=date(2026, 1, 31), repeat_interval=1, repeat_unit="month")

    assert next_occurrence(rule, date(2026, 2, 10)) == date(2026, 2, 28)
    assert next_occurrence(rule, date(2026, 3, 1)) == date(2026, 3, 31)


def test_day_rule_and_days_until() -> None:
    rule = CycleRule(target_date=date(2026, 3, 1), repeat_interval=10, repeat_unit="day")

    assert next_occurrence(rule, date(2026, 3, 15)) == date(2026, 3, 21)
    assert days_until(rule, date(2026, 3, 15)) == 6
    assert days_until(rule, date(2026, 3, 21)) == 0


def test_next_occurrence_never_before_today() -> None:
    rules = [
        CycleRule(target_date=date(2019, 8, 31), repeat_interval=3, repeat_unit="month"),
        CycleRule(target_date=date(2019, 8, 31), repeat_interval=2, repeat_unit="week"),
        CycleRule(target_date=date(2016, 2, 29), repeat_interval=1, repeat_unit="year"),
    ]
    today = date(2026, 1, 1)
    for offset in range(0, 400, 7):
        current = today + timedelta(days=offset)
        for rule in rules:
            assert next_occurrence(rule, current) >= current


def test_interval_without_unit_is_one_time() -> None:
    rule = CycleRule(target_date=date(2020, 1, 1), repeat_interval=3, repeat_unit=None)

    assert next_occurrence(rule, date(2026, 1, 1)) == date(2020, 1, 1)


def test_unparseable_target_has_no_occurrence() -> None:
    rule = CycleRule(target_date="garbage", repeat_interval=1, repeat_unit="year")  # type: ignore[arg-type]

    assert next_occurrence(rule, date(2026, 1, 1)) is None
    assert days_until(rule, date(2026, 1, 1)) is None


def test_huge_day_interval_has_no_occurrence() -> None:
    rule = CycleRule(target_date=date(2020, 1, 1), repeat_interval=3_000_000, repeat_unit="day")

    assert next_occurrence(rule, date(2026, 1, 1)) is None
    assert days_until(rule, date(2026, 1, 1)) is None


def test_huge_month_interval_has_no_occurrence() -> None:
    rule = CycleRule(target_date=date(2020, 1, 1), repeat_interval=10**9, repeat_unit="year")

    assert next_occurrence(rule, date(2026, 1, 1)) is None
