"""Expansion of repeating items into concrete instances inside a date window.

Every function here is pure: no I/O, no shared state. Malformed rules and
unparseable dates degrade to an empty result instead of raising, so one bad
item never blocks expansion of the rest.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from planner_engine.core import occurrence
from planner_engine.core.dates import (
    combine_local,
    iter_days,
    months_between,
    shift_months,
    sunday_weekday,
    to_day,
    week_start,
)
from planner_engine.core.models import (
    CycleRule,
    HabitRule,
    RecurrenceRule,
    RepeatRule,
    ScheduleInstance,
    ScheduleItem,
)

LOGGER = logging.getLogger(__name__)

MAX_MONTHLY_STEPS = 24 * 12
MAX_YEARLY_STEPS = 20


def expand(item: ScheduleItem, range_start: object, range_end: object) -> list[ScheduleInstance]:
    """Instances of ``item`` whose calendar day lies in [range_start, range_end]."""
    start = to_day(range_start)
    end = to_day(range_end)
    if start is None or end is None or end < start:
        return []
    rule = item.repeat_rule
    is_repeat = rule is not None and rule.kind != "none"
    days = occurrence_days(rule or RepeatRule(), start, end, anchor=item.anchor_date)
    return [_build_instance(item, day, is_repeat) for day in days]


def expand_all(items: Iterable[ScheduleItem], range_start: object, range_end: object) -> list[ScheduleInstance]:
    instances: list[ScheduleInstance] = []
    for item in items:
        instances.extend(expand(item, range_start, range_end))
    instances.sort(key=lambda inst: (inst.instance_start, inst.source_item_id))
    return instances


def group_instances_by_date(instances: Iterable[ScheduleInstance]) -> dict[date, list[ScheduleInstance]]:
    grouped: dict[date, list[ScheduleInstance]] = {}
    for instance in instances:
        grouped.setdefault(instance.instance_date, []).append(instance)
    return grouped


def occurrence_days(
    rule: RecurrenceRule,
    start: date,
    end: date,
    *,
    anchor: date | None = None,
) -> list[date]:
    """Calendar days in [start, end] on which ``rule`` occurs.

    ``anchor`` is the first occurrence for schedule repeat rules; cycle rules
    carry their own target date and habit rules have no anchor.
    """
    if end < start:
        return []
    if isinstance(rule, HabitRule):
        return [day for day in iter_days(start, end) if occurrence.is_target_day(rule, day)]
    if isinstance(rule, CycleRule):
        return _cycle_days(rule, start, end)
    if isinstance(rule, RepeatRule):
        if anchor is None:
            return []
        return _repeat_days(rule, anchor, start, end)
    return []


def _repeat_days(rule: RepeatRule, anchor: date, start: date, end: date) -> list[date]:
    if rule.kind == "none":
        return [anchor] if start <= anchor <= end else []
    if not isinstance(rule.interval, int) or rule.interval < 1:
        LOGGER.debug("Repeat rule skipped (invalid interval): kind=%s interval=%s", rule.kind, rule.interval)
        return []
    # nothing before the anchor or after the rule's own end date
    if rule.end_date is not None:
        end = min(end, rule.end_date)
    start = max(start, anchor)
    if end < start:
        return []
    if rule.kind == "daily":
        return _daily_days(anchor, rule.interval, start, end)
    if rule.kind == "weekly":
        return _weekly_days(rule, anchor, start, end)
    if rule.kind == "monthly":
        return _stepped_days(anchor, rule.interval, start, end, months_per_step=1, max_steps=MAX_MONTHLY_STEPS)
    if rule.kind == "yearly":
        return _stepped_days(anchor, rule.interval, start, end, months_per_step=12, max_steps=MAX_YEARLY_STEPS)
    LOGGER.debug("Repeat rule skipped (unknown kind): kind=%s", rule.kind)
    return []


def _daily_days(anchor: date, interval: int, start: date, end: date) -> list[date]:
    elapsed = (start - anchor).days
    steps = -(-elapsed // interval)
    days: list[date] = []
    try:
        current = anchor + timedelta(days=steps * interval)
        while current <= end:
            days.append(current)
            current += timedelta(days=interval)
    except OverflowError:
        # next step lands past date.max
        pass
    return days


def _weekly_days(rule: RepeatRule, anchor: date, start: date, end: date) -> list[date]:
    if rule.weekdays is None:
        targets = frozenset({sunday_weekday(anchor)})
    else:
        targets = rule.weekdays
    if not targets:
        return []
    anchor_week = week_start(anchor)
    days: list[date] = []
    for day in iter_days(start, end):
        if sunday_weekday(day) not in targets:
            continue
        if rule.interval > 1 and ((day - anchor_week).days // 7) % rule.interval != 0:
            continue
        days.append(day)
    return days


def _stepped_days(
    anchor: date,
    interval: int,
    start: date,
    end: date,
    *,
    months_per_step: int,
    max_steps: int,
) -> list[date]:
    step_months = interval * months_per_step
    # jump close to the window, then walk forward until the first candidate inside it
    step = max(0, months_between(anchor, start) // step_months - 1)
    candidate = shift_months(anchor, step * step_months)
    skipped = 0
    while candidate is not None and candidate < start:
        if skipped >= max_steps:
            return []
        step += 1
        skipped += 1
        candidate = shift_months(anchor, step * step_months)
    days: list[date] = []
    count = 0
    while candidate is not None and candidate <= end and count < max_steps:
        days.append(candidate)
        step += 1
        count += 1
        candidate = shift_months(anchor, step * step_months)
    return days


def _cycle_days(rule: CycleRule, start: date, end: date) -> list[date]:
    first = occurrence.next_occurrence(rule, start)
    if first is None or first < start:
        return []
    if not occurrence.has_repeat(rule):
        return [first] if first <= end else []
    days: list[date] = []
    current: date | None = first
    while current is not None and current <= end:
        days.append(current)
        if current == date.max:
            break
        current = occurrence.next_occurrence(rule, current + timedelta(days=1))
    return days


def _build_instance(item: ScheduleItem, day: date, is_repeat: bool) -> ScheduleInstance:
    start = combine_local(day, item.start_time)
    end = combine_local(day, item.end_time) if item.end_time is not None else None
    return ScheduleInstance(
        source_item_id=item.id,
        instance_start=start,
        instance_date=day,
        instance_end=end,
        is_repeat_instance=is_repeat,
        title=item.title,
        location=item.location,
        tags=item.tags,
    )
