from planner_engine.infra.ledger_store import InMemoryLedger, JsonFileLedger, Ledger, SqliteLedger, build_ledger
from planner_engine.infra.metrics import ReminderMetrics

__all__ = ["InMemoryLedger", "JsonFileLedger", "Ledger", "SqliteLedger", "build_ledger", "ReminderMetrics"]
