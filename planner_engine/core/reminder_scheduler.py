"""Polling reminder scheduler on APScheduler with a persisted de-duplication ledger.

Per (item, instance) the life cycle is PENDING -> DUE -> FIRED: an instance is
due once ``start - lead <= now < start`` and fires exactly once, after which
its ledger key is written whether or not the notification went through.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from datetime import date, datetime, timedelta
from typing import Any, Callable, Mapping

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from planner_engine.core.dates import combine_local, to_epoch_ms
from planner_engine.core.models import (
    CycleItem,
    ReminderPayload,
    ScheduleInstance,
    ScheduleItem,
    cycle_item_from_dict,
    schedule_item_from_dict,
)
from planner_engine.core.occurrence import next_occurrence
from planner_engine.core.recurrence import expand
from planner_engine.infra.config import Settings
from planner_engine.infra.ledger_store import FIRED, Ledger, build_ledger
from planner_engine.infra.metrics import ReminderMetrics

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_SECONDS = 60
DEFAULT_WINDOW_MINUTES = 120

_JOB_ID = "reminder-poll"
_CYCLE_LABELS = {
    "anniversary": "Anniversary",
    "countdown": "Countdown",
    "birthday_holiday": "Birthday/holiday",
}

DataSource = Callable[[], Any]
Notifier = Callable[[str, str], Any]
OnReminder = Callable[[ReminderPayload], Any]


def reminder_key(item_id: str, instance_start_ms: int) -> str:
    return f"reminder:{item_id}:{instance_start_ms}"


def countdown_key(item_id: str, day: date) -> str:
    return f"countdown:{item_id}:{day.isoformat()}"


class SchedulerHandle:
    """Returned by ReminderScheduler.start(); controls only the run that created it.

    stop() is idempotent, and a handle left over from an earlier run never
    stops a later one.
    """

    def __init__(self, scheduler: "ReminderScheduler", run_id: int | None) -> None:
        self._scheduler = scheduler
        self._run_id = run_id

    @property
    def running(self) -> bool:
        return self._run_id is not None and self._scheduler.current_run == self._run_id and self._scheduler.running

    def stop(self) -> None:
        if self._run_id is None or self._scheduler.current_run != self._run_id:
            return
        self._scheduler.stop()


class ReminderScheduler:
    def __init__(
        self,
        *,
        ledger: Ledger,
        notifier: Notifier | None = None,
        poll_seconds: int = DEFAULT_POLL_SECONDS,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
        now_provider: Callable[[], datetime] | None = None,
        metrics: ReminderMetrics | None = None,
        enabled: bool = True,
    ) -> None:
        self._ledger = ledger
        self._notifier = notifier
        self._poll_seconds = max(1, poll_seconds)
        self._window = timedelta(minutes=max(1, window_minutes))
        self._now_provider = now_provider or datetime.now
        self._metrics = metrics or ReminderMetrics(enabled=False)
        self._enabled = enabled
        self._scheduler: AsyncIOScheduler | None = None
        self._data_source: DataSource | None = None
        self._on_reminder: OnReminder | None = None
        self._polling = False
        self._run_counter = 0
        self._current_run: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings, notifier: Notifier | None = None) -> "ReminderScheduler":
        return cls(
            ledger=build_ledger(settings.ledger_backend, settings.ledger_path),
            notifier=notifier,
            poll_seconds=settings.reminder_poll_seconds,
            window_minutes=settings.reminder_window_minutes,
            metrics=ReminderMetrics(enabled=settings.metrics_enabled),
            enabled=settings.reminders_enabled,
        )

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def metrics(self) -> ReminderMetrics:
        return self._metrics

    @property
    def current_run(self) -> int | None:
        return self._current_run

    def start(self, data_source: DataSource, on_reminder: OnReminder | None = None) -> SchedulerHandle:
        if not self._enabled:
            LOGGER.info("Reminder scheduler disabled, not starting")
            return SchedulerHandle(self, None)
        if self.running:
            LOGGER.info("Reminder scheduler already started, skipping")
            return SchedulerHandle(self, self._current_run)
        self._data_source = data_source
        self._on_reminder = on_reminder
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
        scheduler = AsyncIOScheduler(event_loop=loop)
        scheduler.add_job(
            self._tick,
            trigger=IntervalTrigger(seconds=self._poll_seconds),
            id=_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(),
        )
        scheduler.start()
        self._scheduler = scheduler
        self._run_counter += 1
        self._current_run = self._run_counter
        LOGGER.info("Reminder scheduler started (tick=%s window_minutes=%s)", self._poll_seconds, int(self._window.total_seconds() // 60))
        return SchedulerHandle(self, self._current_run)

    def stop(self) -> None:
        scheduler = self._scheduler
        self._scheduler = None
        self._current_run = None
        self._data_source = None
        self._on_reminder = None
        if scheduler is None or not scheduler.running:
            return
        try:
            scheduler.shutdown(wait=False)
            LOGGER.info("Reminder scheduler stopped")
        except Exception:
            LOGGER.exception("Reminder scheduler shutdown error")

    async def _tick(self) -> None:
        await self.poll_once()

    async def poll_once(
        self,
        now: datetime | None = None,
        *,
        data_source: DataSource | None = None,
        on_reminder: OnReminder | None = None,
    ) -> list[ReminderPayload]:
        """Run one poll and return the reminders fired by it."""
        source = data_source or self._data_source
        if source is None:
            LOGGER.debug("Reminder poll skipped: no data source")
            return []
        if self._polling:
            LOGGER.info("Reminder poll skipped: previous poll still running")
            return []
        self._polling = True
        started = time.monotonic()
        current = now or self._now_provider()
        callback = on_reminder or self._on_reminder
        fired: list[ReminderPayload] = []
        try:
            try:
                items = await _maybe_await(source())
            except Exception:
                LOGGER.exception("Reminder poll failed: data source error")
                self._metrics.record_error("data_source")
                return []
            for raw in items or []:
                try:
                    fired.extend(await self._check_item(raw, current, callback))
                except Exception:
                    LOGGER.exception("Reminder check failed: item_id=%s", _raw_item_id(raw))
                    self._metrics.record_error("item")
        finally:
            self._polling = False
            self._metrics.record_poll(time.monotonic() - started)
        return fired

    async def _check_item(self, raw: object, now: datetime, on_reminder: OnReminder | None) -> list[ReminderPayload]:
        item = _coerce_item(raw)
        if isinstance(item, ScheduleItem):
            return await self._check_schedule_item(item, now, on_reminder)
        if isinstance(item, CycleItem):
            payload = await self._check_cycle_item(item, now, on_reminder)
            return [payload] if payload is not None else []
        LOGGER.debug("Reminder poll skipped unknown item: type=%s", type(raw).__name__)
        return []

    async def _check_schedule_item(
        self,
        item: ScheduleItem,
        now: datetime,
        on_reminder: OnReminder | None,
    ) -> list[ReminderPayload]:
        lead = item.lead_minutes
        if lead is None:
            return []
        fired: list[ReminderPayload] = []
        for instance in expand(item, now, now + self._window):
            due_at = instance.instance_start - timedelta(minutes=lead)
            if now < due_at or now >= instance.instance_start:
                continue
            key = reminder_key(item.id, instance.instance_start_ms)
            if await self._already_fired(key):
                continue
            payload = _schedule_payload(item, instance)
            await self._fire(payload, key, "schedule", on_reminder)
            fired.append(payload)
        return fired

    async def _check_cycle_item(
        self,
        item: CycleItem,
        now: datetime,
        on_reminder: OnReminder | None,
    ) -> ReminderPayload | None:
        today = now.date()
        upcoming = next_occurrence(item.rule, today)
        if upcoming is None:
            return None
        days_before = max(0, item.rule.reminder_days_before)
        if upcoming - timedelta(days=days_before) != today:
            return None
        key = countdown_key(item.id, today)
        if await self._already_fired(key):
            return None
        label = _CYCLE_LABELS.get(item.kind, item.kind)
        when = "today" if days_before == 0 else f"in {days_before} days"
        payload = ReminderPayload(
            item_id=item.id,
            instance_start_ms=to_epoch_ms(combine_local(upcoming, None)),
            title=f"Countdown: {item.title}",
            body=f"{label} · {when}",
            due_at_label=upcoming.isoformat(),
        )
        await self._fire(payload, key, "countdown", on_reminder)
        return payload

    async def _already_fired(self, key: str) -> bool:
        """Ledger lookup; an unreadable ledger counts as fired so nothing duplicates."""
        try:
            return bool(await _maybe_await(self._ledger.has(key)))
        except Exception:
            LOGGER.exception("Reminder ledger read failed: key=%s", key)
            self._metrics.record_error("ledger_read")
            return True

    async def _fire(
        self,
        payload: ReminderPayload,
        key: str,
        kind: str,
        on_reminder: OnReminder | None,
    ) -> None:
        if on_reminder is not None:
            try:
                on_reminder(payload)
            except Exception:
                LOGGER.exception("Reminder callback failed: item_id=%s key=%s", payload.item_id, key)
                self._metrics.record_error("callback")
        if self._notifier is not None:
            try:
                await _maybe_await(self._notifier(payload.title, payload.body))
            except Exception:
                LOGGER.exception("Reminder notification failed: item_id=%s key=%s", payload.item_id, key)
                self._metrics.record_error("notify")
        try:
            await _maybe_await(self._ledger.put(key, FIRED))
        except Exception:
            LOGGER.exception("Reminder ledger write failed: item_id=%s key=%s", payload.item_id, key)
            self._metrics.record_error("ledger_write")
        self._metrics.record_fired(kind)
        LOGGER.info(
            "Reminder fired: item_id=%s kind=%s instance_start_ms=%s due_at=%s",
            payload.item_id,
            kind,
            payload.instance_start_ms,
            payload.due_at_label,
        )


def _schedule_payload(item: ScheduleItem, instance: ScheduleInstance) -> ReminderPayload:
    time_label = instance.instance_start.strftime("%H:%M")
    body = f"Starts at {time_label}"
    if item.location:
        body = f"{body} · {item.location}"
    return ReminderPayload(
        item_id=item.id,
        instance_start_ms=instance.instance_start_ms,
        title=f"Schedule reminder: {item.title}",
        body=body,
        due_at_label=time_label,
        location=item.location,
    )


def _coerce_item(raw: object) -> ScheduleItem | CycleItem | None:
    if isinstance(raw, (ScheduleItem, CycleItem)):
        return raw
    if isinstance(raw, Mapping):
        if "target_date" in raw:
            return cycle_item_from_dict(raw)
        return schedule_item_from_dict(raw)
    return None


def _raw_item_id(raw: object) -> object:
    if isinstance(raw, (ScheduleItem, CycleItem)):
        return raw.id
    if isinstance(raw, Mapping):
        return raw.get("id")
    return None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
