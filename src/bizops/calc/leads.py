"""Lead visibility windows, statistics and round-robin distribution."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from bizops.calc._fields import field

PERIODS = ("all", "today", "week", "month", "year")
DEFAULT_STATUSES = ("NEW", "CALLING", "CLOSED")

L = TypeVar("L")
S = TypeVar("S")


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_start(period: str, now: datetime) -> datetime | None:
    """Return the inclusive lower bound for a period filter, or None for ``all``.

    ``week`` starts on Monday 00:00 of the current ISO week.
    """
    now = as_utc(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "all":
        return None
    if period == "today":
        return midnight
    if period == "week":
        return midnight - timedelta(days=midnight.weekday())
    if period == "month":
        return midnight.replace(day=1)
    if period == "year":
        return midnight.replace(month=1, day=1)
    raise ValueError(f"Unknown period: {period}")


def matches_period(received_at: datetime, period: str, now: datetime) -> bool:
    start = period_start(period, now)
    if start is None:
        return True
    return as_utc(received_at) >= start


def matches_search(lead: Any, term: str) -> bool:
    """Case-insensitive name match or raw phone substring match."""
    if not term:
        return True
    lowered = term.lower().strip()
    return lowered in str(field(lead, "name", "")).lower() or lowered in str(field(lead, "phone", ""))


def stats(leads: Iterable[Any]) -> dict[str, Any]:
    """Count leads in total, by status and by course."""
    by_status = {status: 0 for status in DEFAULT_STATUSES}
    by_course: dict[str, int] = {}
    total = 0
    for lead in leads:
        total += 1
        status = field(lead, "status") or "NEW"
        by_status[status] = by_status.get(status, 0) + 1
        course = field(lead, "course") or "Uncategorized"
        by_course[course] = by_course.get(course, 0) + 1
    return {"total": total, "by_status": by_status, "by_course": by_course}


def round_robin(
    targets: Sequence[L], staff: Sequence[S], start: int = 0
) -> tuple[list[tuple[L, S]], int]:
    """Pair each target with the next staff member in rotation.

    Args:
        targets: Items to distribute, in the order they should be handed out.
        staff: Recipients in rotation order.
        start: Rotation cursor left by the previous run.

    Returns:
        The (target, staff) pairs and the cursor for the next run.

    Raises:
        ValueError: If ``staff`` is empty.
    """
    if not staff:
        raise ValueError("No active sales staff")
    index = start % len(staff)
    pairs: list[tuple[L, S]] = []
    for target in targets:
        pairs.append((target, staff[index]))
        index = (index + 1) % len(staff)
    return pairs, index
