"""Persisted reminder ledgers: presence-by-key records of fired reminders.

Entries are append-only; nothing here deletes them.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)

FIRED = "fired"


class Ledger(Protocol):
    def has(self, key: str) -> bool: ...

    def put(self, key: str, value: str) -> None: ...


class InMemoryLedger:
    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def has(self, key: str) -> bool:
        return key in self._entries

    def put(self, key: str, value: str) -> None:
        self._entries[key] = value

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileLedger:
    """Ledger kept in one JSON document, rewritten atomically on every put."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._entries = self._load()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = value
            self._save()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError):
            LOGGER.warning("Ledger file unreadable, starting empty: path=%s", self._path)
            return {}
        entries = raw.get("entries") if isinstance(raw, dict) else None
        if not isinstance(entries, dict):
            return {}
        return {key: value for key, value in entries.items() if isinstance(key, str) and isinstance(value, str)}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        payload = {"schema_version": 1, "entries": self._entries, "updated_at": datetime.now().isoformat()}
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        tmp_path.replace(self._path)


class SqliteLedger:
    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(self._db_path, check_same_thread=False)
        self._lock = threading.Lock()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS reminder_ledger (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        self._connection.commit()

    def has(self, key: str) -> bool:
        with self._lock:
            cursor = self._connection.execute("SELECT 1 FROM reminder_ledger WHERE key = ? LIMIT 1", (key,))
            return cursor.fetchone() is not None

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._connection.execute(
                "INSERT OR IGNORE INTO reminder_ledger (key, value, created_at) VALUES (?, ?, ?)",
                (key, value, datetime.now().isoformat()),
            )
            self._connection.commit()

    def close(self) -> None:
        try:
            self._connection.close()
        except sqlite3.Error:
            LOGGER.exception("Failed to close ledger database")


def build_ledger(backend: str, path: Path) -> Ledger:
    if backend == "memory":
        return InMemoryLedger()
    if backend == "sqlite":
        return SqliteLedger(path)
    return JsonFileLedger(path)
