from __future__ import annotations

from typing import Iterable

from planner_engine.core.models import ScheduleInstance


def find_conflicts(
    day_instances: Iterable[ScheduleInstance],
    candidate: ScheduleInstance,
    exclude_id: str | Iterable[str] | None = None,
) -> list[ScheduleInstance]:
    """Instances that overlap ``candidate``, in input order.

    Intervals are half-open. An instance without an end is a point at its
    start, so it only conflicts with an interval strictly containing it.
    """
    excluded = _excluded_ids(exclude_id)
    a_start, a_end = _bounds(candidate)
    conflicts: list[ScheduleInstance] = []
    for instance in day_instances:
        if instance.source_item_id in excluded or instance == candidate:
            continue
        b_start, b_end = _bounds(instance)
        if a_start < b_end and a_end > b_start:
            conflicts.append(instance)
    return conflicts


def _bounds(instance: ScheduleInstance) -> tuple[int, int]:
    start = instance.instance_start_ms
    end = instance.instance_end_ms
    return start, end if end is not None else start


def _excluded_ids(exclude_id: str | Iterable[str] | None) -> set[str]:
    if exclude_id is None:
        return set()
    if isinstance(exclude_id, str):
        return {exclude_id}
    return {value for value in exclude_id if isinstance(value, str)}
