from __future__ import annotations

from datetime import date, datetime, time, timedelta

from planner_engine.core.models import CycleRule, HabitRule, RepeatRule, ScheduleItem
from planner_engine.core.recurrence import expand, expand_all, group_instances_by_date, occurrence_days


def _item(rule: RepeatRule | None, anchor: date = date(2026, 3, 1), **kwargs) -> ScheduleItem:
    return ScheduleItem(
        id=kwargs.pop("id", "item-1"),
        title=kwargs.pop("title", "Standup"),
        anchor_date=anchor,
        start_time=kwargs.pop("start_time", time(9, 30)),
        end_time=kwargs.pop("end_time", time(10, 15)),
        repeat_rule=rule,
        **kwargs,
    )


def _days(instances) -> list[date]:
    return [inst.instance_date for inst in instances]


def test_daily_interval_skips_forward_to_range() -> None:
    anchor = date(2026, 3, 1)
    item = _item(RepeatRule(kind="daily", interval=3), anchor=anchor)

    instances = expand(item, anchor + timedelta(days=10), anchor + timedelta(days=20))

    assert _days(instances) == [anchor + timedelta(days=offset) for offset in (12, 15, 18)]
    assert all(inst.is_repeat_instance for inst in instances)


def test_daily_anchor_far_in_the_past() -> None:
    item = _item(RepeatRule(kind="daily", interval=7), anchor=date(2000, 1, 3))

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 14))

    # 2000-01-03 is a Monday, so every seventh day is a Monday too
    assert _days(instances) == [date(2026, 3, 2), date(2026, 3, 9)]


def test_weekly_interval_two_defaults_to_anchor_weekday() -> None:
    monday = date(2026, 3, 2)
    item = _item(RepeatRule(kind="weekly", interval=2), anchor=monday)

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 31))

    assert _days(instances) == [date(2026, 3, 2), date(2026, 3, 16), date(2026, 3, 30)]


def test_weekly_with_explicit_weekdays() -> None:
    item = _item(RepeatRule(kind="weekly", weekdays=frozenset({1, 3})), anchor=date(2026, 3, 2))

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 8))

    assert _days(instances) == [date(2026, 3, 2), date(2026, 3, 4)]


def test_weekly_interval_counts_monday_based_weeks() -> None:
    wednesday = date(2026, 3, 4)
    item = _item(RepeatRule(kind="weekly", interval=2, weekdays=frozenset({1})), anchor=wednesday)

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 31))

    # the anchor week starts Monday 03-02 (before the anchor, so not emitted)
    assert _days(instances) == [date(2026, 3, 16), date(2026, 3, 30)]


def test_weekly_with_empty_weekdays_is_malformed() -> None:
    item = _item(RepeatRule(kind="weekly", weekdays=frozenset()), anchor=date(2026, 3, 2))

    assert expand(item, date(2026, 3, 1), date(2026, 3, 31)) == []


def test_monthly_clamps_to_month_end() -> None:
    item = _item(RepeatRule(kind="monthly"), anchor=date(2026, 1, 31))

    instances = expand(item, date(2026, 1, 1), date(2026, 4, 30))

    assert _days(instances) == [date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 31), date(2026, 4, 30)]


def test_monthly_clamp_in_leap_year() -> None:
    item = _item(RepeatRule(kind="monthly"), anchor=date(2024, 1, 31))

    instances = expand(item, date(2024, 2, 1), date(2024, 2, 29))

    assert _days(instances) == [date(2024, 2, 29)]


def test_monthly_interval_steps_from_anchor() -> None:
    item = _item(RepeatRule(kind="monthly", interval=2), anchor=date(2026, 1, 15))

    instances = expand(item, date(2026, 6, 1), date(2026, 12, 31))

    assert _days(instances) == [date(2026, 7, 15), date(2026, 9, 15), date(2026, 11, 15)]


def test_yearly_leap_day_anchor() -> None:
    item = _item(RepeatRule(kind="yearly"), anchor=date(2024, 2, 29))

    instances = expand(item, date(2025, 1, 1), date(2028, 12, 31))

    assert _days(instances) == [date(2025, 2, 28), date(2026, 2, 28), date(2027, 2, 28), date(2028, 2, 29)]


def test_end_date_is_inclusive_upper_bound() -> None:
    item = _item(RepeatRule(kind="daily", end_date=date(2026, 3, 5)), anchor=date(2026, 3, 1))

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 31))

    assert _days(instances)[-1] == date(2026, 3, 5)
    assert len(instances) == 5
    assert all(inst.instance_date <= date(2026, 3, 5) for inst in instances)


def test_instances_reuse_item_time_of_day() -> None:
    item = _item(RepeatRule(kind="weekly"), anchor=date(2026, 3, 2))

    instances = expand(item, date(2026, 3, 16), date(2026, 3, 16))

    assert len(instances) == 1
    instance = instances[0]
    assert instance.instance_start == datetime(2026, 3, 16, 9, 30)
    assert instance.instance_end == datetime(2026, 3, 16, 10, 15)
    assert instance.instance_start_ms == int(datetime(2026, 3, 16, 9, 30).timestamp() * 1000)


def test_non_repeating_item_only_on_anchor_day() -> None:
    item = _item(None, anchor=date(2026, 3, 10), end_time=None)

    inside = expand(item, date(2026, 3, 1), date(2026, 3, 31))
    outside = expand(item, date(2026, 4, 1), date(2026, 4, 30))

    assert len(inside) == 1
    assert inside[0].is_repeat_instance is False
    assert inside[0].instance_end is None
    assert outside == []


def test_nothing_before_anchor() -> None:
    item = _item(RepeatRule(kind="daily"), anchor=date(2026, 3, 10))

    instances = expand(item, date(2026, 3, 1), date(2026, 3, 11))

    assert _days(instances) == [date(2026, 3, 10), date(2026, 3, 11)]


def test_malformed_rules_produce_no_instances() -> None:
    for rule in (
        RepeatRule(kind="monthly", interval=0),
        RepeatRule(kind="daily", interval=-2),
        RepeatRule(kind="hourly"),
    ):
        assert expand(_item(rule), date(2026, 3, 1), date(2026, 3, 31)) == []


def test_unparseable_range_produces_no_instances() -> None:
    item = _item(RepeatRule(kind="daily"))

    assert expand(item, "not-a-date", date(2026, 3, 31)) == []
    assert expand(item, date(2026, 3, 31), date(2026, 3, 1)) == []


def test_range_accepts_datetimes_and_iso_strings() -> None:
    item = _item(RepeatRule(kind="daily"), anchor=date(2026, 3, 1))

    instances = expand(item, datetime(2026, 3, 3, 23, 59), "2026-03-04")

    assert _days(instances) == [date(2026, 3, 3), date(2026, 3, 4)]


def test_equality_uses_item_and_start() -> None:
    item = _item(RepeatRule(kind="daily"))
    first = expand(item, date(2026, 3, 2), date(2026, 3, 2))[0]
    renamed = expand(_item(RepeatRule(kind="daily"), title="Renamed"), date(2026, 3, 2), date(2026, 3, 2))[0]

    assert first == renamed
    assert len({first, renamed}) == 1


def test_expand_all_sorts_and_groups_by_date() -> None:
    early = _item(RepeatRule(kind="daily"), id="early", start_time=time(8, 0), end_time=None)
    late = _item(RepeatRule(kind="daily"), id="late", start_time=time(18, 0), end_time=None)

    instances = expand_all([late, early], date(2026, 3, 2), date(2026, 3, 3))
    grouped = group_instances_by_date(instances)

    assert [inst.source_item_id for inst in instances] == ["early", "late", "early", "late"]
    assert sorted(grouped) == [date(2026, 3, 2), date(2026, 3, 3)]
    assert [inst.source_item_id for inst in grouped[date(2026, 3, 3)]] == ["early", "late"]


def test_occurrence_days_for_habit_and_cycle_rules() -> None:
    weekdays = occurrence_days(HabitRule(frequency="weekdays"), date(2026, 3, 2), date(2026, 3, 8))
    weekly_cycle = occurrence_days(
        CycleRule(target_date=date(2026, 1, 10), repeat_interval=1, repeat_unit="week"),
        date(2026, 3, 1),
        date(2026, 3, 31),
    )
    one_time_past = occurrence_days(CycleRule(target_date=date(2020, 1, 1)), date(2026, 3, 1), date(2026, 3, 31))

    assert weekdays == [date(2026, 3, 2) + timedelta(days=offset) for offset in range(5)]
    assert weekly_cycle == [date(2026, 3, 7), date(2026, 3, 14), date(2026, 3, 21), date(2026, 3, 28)]
    assert one_time_past == []


def test_huge_daily_interval_stops_at_calendar_end() -> None:
    rule = RepeatRule(kind="daily", interval=3_000_000)

    assert _days(expand(_item(rule), date(2026, 3, 1), date(2026, 3, 31))) == [date(2026, 3, 1)]
    assert expand(_item(rule), date(2026, 3, 2), date(2026, 3, 31)) == []


def test_cycle_rule_up_to_last_calendar_day() -> None:
    rule = CycleRule(target_date=date(9999, 12, 30), repeat_interval=1, repeat_unit="day")

    assert occurrence_days(rule, date(9999, 12, 29), date.max) == [date(9999, 12, 30), date.max]
