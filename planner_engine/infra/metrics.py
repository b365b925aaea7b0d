"""
In-memory counters for the reminder scheduler, rendered as Prometheus text.
All methods no-op when disabled; no global registry, one collector per scheduler.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import DefaultDict


def _sanitize_label(v: str) -> str:
    return "".join(c if c.isalnum() or c in "._-" else "_" for c in v) or "unknown"


class ReminderMetrics:
    def __init__(self, enabled: bool = True) -> None:
        self.enabled = bool(enabled)
        self._lock = threading.Lock()
        self._counters: DefaultDict[str, int] = defaultdict(int)
        self._poll_duration_sum = 0.0
        self._poll_count = 0

    def record_poll(self, duration_seconds: float) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._poll_duration_sum += duration_seconds
            self._poll_count += 1

    def record_fired(self, kind: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._counters["fired." + _sanitize_label(kind)] += 1

    def record_error(self, stage: str) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._counters["errors." + _sanitize_label(stage)] += 1

    def get_counter(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    @property
    def poll_count(self) -> int:
        with self._lock:
            return self._poll_count

    def get_metrics_text(self) -> str:
        if not self.enabled:
            return ""
        with self._lock:
            lines: list[str] = []
            for key in sorted(self._counters):
                name = "planner_reminder_" + key.replace(".", "_").replace("-", "_")
                lines.append(f"# HELP {name} Counter")
                lines.append(f"# TYPE {name} counter")
                lines.append(f"{name} {self._counters[key]}")
            lines.append("# HELP planner_reminder_poll_seconds Poll duration")
            lines.append("# TYPE planner_reminder_poll_seconds summary")
            lines.append(f"planner_reminder_poll_seconds_sum {self._poll_duration_sum:.6f}")
            lines.append(f"planner_reminder_poll_seconds_count {self._poll_count}")
        return "\n".join(lines) + "\n"
