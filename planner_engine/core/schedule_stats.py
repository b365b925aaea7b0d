from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable

from planner_engine.core.dates import to_day
from planner_engine.core.models import ScheduleItem
from planner_engine.core.recurrence import expand

UNTAGGED = "untagged"


@dataclass(frozen=True)
class ScheduleStats:
    total_minutes: int
    scheduled_minutes: int
    free_minutes: int
    instance_count: int
    by_tag: dict[str, int] = field(default_factory=dict)


def compute_schedule_stats(items: Iterable[ScheduleItem], range_start: object, range_end: object) -> ScheduleStats:
    """Busy/free minute totals for every instance inside the window."""
    start = to_day(range_start)
    end = to_day(range_end)
    if start is None or end is None or end < start:
        return ScheduleStats(total_minutes=0, scheduled_minutes=0, free_minutes=0, instance_count=0)
    total_minutes = int((end - start + timedelta(days=1)).total_seconds() // 60)
    scheduled = 0
    count = 0
    by_tag: dict[str, int] = {}
    for item in items:
        for instance in expand(item, start, end):
            end_ms = instance.instance_end_ms
            duration = 0
            if end_ms is not None:
                duration = max(0, round((end_ms - instance.instance_start_ms) / 60000))
            tag = instance.tags[0] if instance.tags else UNTAGGED
            by_tag[tag] = by_tag.get(tag, 0) + duration
            scheduled += duration
            count += 1
    return ScheduleStats(
        total_minutes=total_minutes,
        scheduled_minutes=scheduled,
        free_minutes=max(0, total_minutes - scheduled),
        instance_count=count,
        by_tag=by_tag,
    )
