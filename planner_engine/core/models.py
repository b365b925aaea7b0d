from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Literal, Mapping, Union

from planner_engine.core.dates import to_day, to_epoch_ms, to_time

RepeatKind = Literal["none", "daily", "weekly", "monthly", "yearly"]
RepeatUnit = Literal["day", "week", "month", "year"]
HabitFrequency = Literal["daily", "weekdays", "weekends", "weekly"]
CycleKind = Literal["anniversary", "countdown", "birthday_holiday"]
Period = Literal["dawn", "morning", "noon", "afternoon", "dusk", "evening", "night"]

REPEAT_KINDS = {"none", "daily", "weekly", "monthly", "yearly"}
REPEAT_UNITS = {"day", "week", "month", "year"}
HABIT_FREQUENCIES = {"daily", "weekdays", "weekends", "weekly"}
CYCLE_KINDS = {"anniversary", "countdown", "birthday_holiday"}
PERIODS: tuple[str, ...] = ("dawn", "morning", "noon", "afternoon", "dusk", "evening", "night")
DEFAULT_PERIOD = "morning"


@dataclass(frozen=True)
class RepeatRule:
    kind: str = "none"
    interval: int = 1
    end_date: date | None = None
    weekdays: frozenset[int] | None = None


@dataclass(frozen=True)
class ReminderSettings:
    enabled: bool
    minutes: int | None


@dataclass(frozen=True)
class ScheduleItem:
    id: str
    title: str
    anchor_date: date
    start_time: time | None = None
    end_time: time | None = None
    repeat_rule: RepeatRule | None = None
    reminder: ReminderSettings | None = None
    location: str | None = None
    tags: tuple[str, ...] = ()

    @property
    def lead_minutes(self) -> int | None:
        if self.reminder is None or not self.reminder.enabled:
            return None
        return self.reminder.minutes


@dataclass(frozen=True)
class ScheduleInstance:
    source_item_id: str
    instance_start: datetime
    instance_date: date = field(compare=False)
    instance_end: datetime | None = field(default=None, compare=False)
    is_repeat_instance: bool = field(default=False, compare=False)
    title: str = field(default="", compare=False)
    location: str | None = field(default=None, compare=False)
    tags: tuple[str, ...] = field(default=(), compare=False)

    @property
    def instance_start_ms(self) -> int:
        return to_epoch_ms(self.instance_start)

    @property
    def instance_end_ms(self) -> int | None:
        if self.instance_end is None:
            return None
        return to_epoch_ms(self.instance_end)


@dataclass(frozen=True)
class CycleRule:
    target_date: date
    repeat_interval: int = 0
    repeat_unit: str | None = None
    reminder_days_before: int = 0


@dataclass(frozen=True)
class CycleItem:
    id: str
    title: str
    rule: CycleRule
    kind: str = "countdown"


@dataclass(frozen=True)
class HabitRule:
    frequency: str = "daily"
    target_weekdays: frozenset[int] = frozenset()


@dataclass(frozen=True)
class Habit:
    id: str
    name: str
    rule: HabitRule = HabitRule()
    period: str = DEFAULT_PERIOD


# Closed set of recurrence encodings; see recurrence.occurrence_days for per-kind logic.
RecurrenceRule = Union[RepeatRule, CycleRule, HabitRule]


@dataclass(frozen=True)
class CompletionEntry:
    completed: bool
    notes: str | None = None


class CompletionLog:
    """Read-only view over the (item_id, day) -> completion mapping."""

    def __init__(self, entries: Mapping[tuple[str, date], CompletionEntry] | None = None) -> None:
        self._entries: dict[tuple[str, date], CompletionEntry] = dict(entries or {})

    @classmethod
    def from_rows(cls, rows: list[Mapping[str, object]]) -> "CompletionLog":
        entries: dict[tuple[str, date], CompletionEntry] = {}
        for row in rows:
            item_id = row.get("habit_id") or row.get("item_id")
            day = to_day(row.get("date"))
            if not isinstance(item_id, str) or day is None:
                continue
            notes = row.get("notes")
            entries[(item_id, day)] = CompletionEntry(
                completed=bool(row.get("completed")),
                notes=notes if isinstance(notes, str) else None,
            )
        return cls(entries)

    def get(self, item_id: str, day: date) -> CompletionEntry | None:
        return self._entries.get((item_id, day))

    def is_completed(self, item_id: str, day: date) -> bool:
        entry = self._entries.get((item_id, day))
        return bool(entry and entry.completed)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class ReminderPayload:
    item_id: str
    instance_start_ms: int
    title: str
    body: str
    due_at_label: str
    location: str | None = None


def schedule_item_from_dict(raw: Mapping[str, object]) -> ScheduleItem | None:
    item_id = raw.get("id")
    anchor = to_day(raw.get("date"))
    if not isinstance(item_id, str) or not item_id or anchor is None:
        return None
    start_source = raw.get("start_time")
    title = raw.get("title")
    location = raw.get("location")
    tags = raw.get("tags")
    return ScheduleItem(
        id=item_id,
        title=title if isinstance(title, str) else "",
        anchor_date=anchor,
        # without an explicit start time the anchor's own time of day is kept
        start_time=to_time(start_source if start_source is not None else raw.get("date")),
        end_time=to_time(raw.get("end_time")),
        repeat_rule=_parse_repeat_rule(raw.get("repeat_rule")),
        reminder=_parse_reminder_settings(raw.get("reminder_settings")),
        location=location if isinstance(location, str) and location.strip() else None,
        tags=tuple(tag for tag in tags if isinstance(tag, str)) if isinstance(tags, list) else (),
    )


def cycle_item_from_dict(raw: Mapping[str, object]) -> CycleItem | None:
    item_id = raw.get("id")
    target = to_day(raw.get("target_date"))
    if not isinstance(item_id, str) or not item_id or target is None:
        return None
    interval = _parse_int(raw.get("repeat_interval")) or 0
    unit = raw.get("repeat_unit") if raw.get("repeat_unit") in REPEAT_UNITS else None
    if interval <= 0 and raw.get("is_annual"):
        interval, unit = 1, "year"
    title = raw.get("title")
    kind = raw.get("type")
    return CycleItem(
        id=item_id,
        title=title if isinstance(title, str) else "",
        kind=kind if isinstance(kind, str) and kind in CYCLE_KINDS else "countdown",
        rule=CycleRule(
            target_date=target,
            repeat_interval=max(0, interval),
            repeat_unit=unit,
            reminder_days_before=max(0, _parse_int(raw.get("reminder_days_before")) or 0),
        ),
    )


def habit_from_dict(raw: Mapping[str, object]) -> Habit | None:
    habit_id = raw.get("id")
    if not isinstance(habit_id, str) or not habit_id:
        return None
    name = raw.get("name")
    frequency = raw.get("frequency")
    period = raw.get("period")
    return Habit(
        id=habit_id,
        name=name if isinstance(name, str) else "",
        rule=HabitRule(
            frequency=frequency if isinstance(frequency, str) and frequency else "daily",
            target_weekdays=_parse_weekday_set(raw.get("target_days")) or frozenset(),
        ),
        period=period if isinstance(period, str) and period in PERIODS else DEFAULT_PERIOD,
    )


def _parse_repeat_rule(value: object) -> RepeatRule | None:
    if not isinstance(value, Mapping):
        return None
    kind = value.get("type") or value.get("kind")
    if not isinstance(kind, str) or not kind:
        return None
    raw_interval = value.get("interval")
    interval = 1 if raw_interval is None else _parse_int(raw_interval)
    raw_end = value.get("endDate") if "endDate" in value else value.get("end_date")
    end_date = to_day(raw_end) if raw_end else None
    if interval is None or (raw_end and end_date is None):
        # interval 0 marks the rule malformed; the expander yields nothing for it
        interval = 0
    return RepeatRule(
        kind=kind,
        interval=interval,
        end_date=end_date,
        weekdays=_parse_weekday_set(value.get("weekdays")),
    )


def _parse_reminder_settings(value: object) -> ReminderSettings | None:
    if not isinstance(value, Mapping):
        return None
    minutes = _parse_int(value.get("minutes"))
    return ReminderSettings(
        enabled=bool(value.get("enabled")),
        minutes=max(0, minutes) if minutes is not None else None,
    )


def _parse_weekday_set(value: object) -> frozenset[int] | None:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if not isinstance(value, (list, tuple, set, frozenset)):
        return None
    return frozenset(
        day for day in value if isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
    )


def _parse_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
