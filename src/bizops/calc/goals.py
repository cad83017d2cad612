"""Progress and month-end forecast for SMART goals."""

from __future__ import annotations

import calendar
from datetime import date


def progress(current: int, target: int) -> int:
    """Percent complete, capped at 100. A non-positive target counts as 1."""
    target = target or 1
    return min(round(current / target * 100), 100)


def forecast(current: int, target: int, today: date) -> str:
    """Compare progress against the share of the month already elapsed.

    Returns one of ``UNKNOWN``, ``EXCELLENT``, ``ON_TRACK`` or ``AT_RISK``.
    """
    if not target:
        return "UNKNOWN"
    percent = current / target * 100
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    expected = today.day / days_in_month * 100
    if percent >= 100:
        return "EXCELLENT"
    if percent >= expected:
        return "ON_TRACK"
    return "AT_RISK"
