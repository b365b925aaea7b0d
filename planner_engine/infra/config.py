from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

LOGGER = logging.getLogger(__name__)

DEFAULT_JSON_LEDGER_PATH = Path("data/reminder_ledger.json")
DEFAULT_SQLITE_LEDGER_PATH = Path("data/reminder_ledger.db")
LEDGER_BACKENDS = {"memory", "json", "sqlite"}


@dataclass(frozen=True)
class Settings:
    reminders_enabled: bool
    reminder_poll_seconds: int
    reminder_window_minutes: int
    ledger_backend: str
    ledger_path: Path
    metrics_enabled: bool


def load_settings(env: dict[str, str] | None = None) -> Settings:
    if env is None:
        load_dotenv()
        env = dict(os.environ)

    reminders_enabled = _parse_optional_bool(env.get("REMINDERS_ENABLED"))
    if reminders_enabled is None:
        reminders_enabled = True
    poll_seconds = max(1, _parse_int_with_default(env.get("REMINDER_POLL_SECONDS"), 60))
    window_minutes = max(1, _parse_int_with_default(env.get("REMINDER_WINDOW_MINUTES"), 120))
    ledger_backend = env.get("LEDGER_BACKEND", "json").strip().lower()
    if ledger_backend not in LEDGER_BACKENDS:
        LOGGER.warning("config: unknown LEDGER_BACKEND=%s, using json", ledger_backend)
        ledger_backend = "json"
    default_path = DEFAULT_SQLITE_LEDGER_PATH if ledger_backend == "sqlite" else DEFAULT_JSON_LEDGER_PATH
    ledger_path = Path(env.get("LEDGER_PATH") or default_path)
    metrics_enabled = _parse_optional_bool(env.get("METRICS_ENABLED"))
    if metrics_enabled is None:
        metrics_enabled = True
    return Settings(
        reminders_enabled=reminders_enabled,
        reminder_poll_seconds=poll_seconds,
        reminder_window_minutes=window_minutes,
        ledger_backend=ledger_backend,
        ledger_path=ledger_path,
        metrics_enabled=metrics_enabled,
    )


def _parse_optional_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    return trimmed in {"1", "true", "yes", "on"}


def _parse_int_with_default(value: str | None, default: int) -> int:
    if value is None:
        return default
    trimmed = value.strip()
    if not trimmed:
        return default
    return int(trimmed)
