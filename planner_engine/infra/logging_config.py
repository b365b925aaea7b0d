"""Logging setup for hosts that embed the engine.

configure_logging() owns only the ``planner_engine`` logger tree: it installs
a stderr handler and, when LOG_FILE is set, a rotating file handler there,
and leaves the host's root logger alone. APScheduler's per-tick chatter is
capped at WARNING.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "planner_engine"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_FILE_MAX_BYTES = 5 * 1024 * 1024
_FILE_BACKUPS = 3
_OWNED_ATTR = "_planner_engine_owned"


def level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get("LOG_LEVEL", "").strip().upper()
    resolved = logging.getLevelName(name) if name else default
    return resolved if isinstance(resolved, int) else default


def configure_logging(*, level: int | None = None, log_file: str | None = None) -> logging.Logger:
    """Attach handlers to the ``planner_engine`` logger and return it.

    ``level`` falls back to LOG_LEVEL and ``log_file`` to LOG_FILE. Handlers
    from a previous call are closed and replaced, never stacked.
    """
    if level is None:
        level = level_from_env()
    if log_file is None:
        log_file = os.environ.get("LOG_FILE", "").strip() or None

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        if getattr(handler, _OWNED_ATTR, False):
            logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(log_file, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8")
            )
        except OSError as exc:
            file_error = exc

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in handlers:
        setattr(handler, _OWNED_ATTR, True)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    if file_error is not None:
        logger.warning("Log file unavailable, stderr only: path=%s error=%s", log_file, file_error)

    logging.getLogger("apscheduler").setLevel(max(level, logging.WARNING))
    return logger
