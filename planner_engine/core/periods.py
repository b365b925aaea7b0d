from __future__ import annotations

from datetime import datetime

# (first hour, period) in ascending order; hours before 05:00 belong to "night".
_PERIOD_STARTS: tuple[tuple[int, str], ...] = (
    (5, "dawn"),
    (9, "morning"),
    (12, "noon"),
    (14, "afternoon"),
    (18, "dusk"),
    (20, "evening"),
    (23, "night"),
)

PERIOD_ORDER = {name: index for index, (_, name) in enumerate(_PERIOD_STARTS)}


def current_period(moment: datetime | None = None) -> str:
    hour = (moment or datetime.now()).hour
    period = "night"
    for first_hour, name in _PERIOD_STARTS:
        if hour >= first_hour:
            period = name
    return period
