"""Training calendar scheduling and class grouping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any

from bizops.calc._fields import field

MAX_SCHEDULE_DAYS = 365


def js_weekday(day: date) -> int:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def generate_schedule(
    sessions: int,
    start: date,
    preferred_days: Sequence[int] = (),
    time: str = "20:00",
    trainer: str = "",
) -> list[dict]:
    """Lay out ``sessions`` class dates from ``start`` onto preferred weekdays.

    Every day qualifies when ``preferred_days`` is empty. The walk stops
    after a year even if fewer sessions were placed.
    """
    count = max(int(sessions or 1), 1)
    wanted = set(preferred_days)
    schedule: list[dict] = []
    current = start
    while len(schedule) < count:
        if not wanted or js_weekday(current) in wanted:
            schedule.append(
                {
                    "date": current,
                    "time": time or "20:00",
                    "trainer": trainer or "",
                    "title_suffix": f"(Session {len(schedule) + 1})",
                }
            )
        current += timedelta(days=1)
        if (current - start).days > MAX_SCHEDULE_DAYS:
            break
    return schedule


def batch_title(template_title: str, batch_code: str, suffix: str) -> str:
    batch = f" - {batch_code}" if batch_code else ""
    return f"{template_title}{batch} {suffix}"


def base_title(title: str) -> str:
    """Strip the ``(Session n)`` suffix from an event title."""
    return title.split("(")[0].strip()


def group_classes(template_id: str, template_title: str, events: Iterable[Any]) -> list[dict]:
    """Group a template's events into classes (one per batch), newest class first."""
    classes: dict[str, dict] = {}
    for event in events:
        title = field(event, "title", "")
        belongs = field(event, "template_id") == template_id or (
            bool(title) and bool(template_title) and title.startswith(template_title)
        )
        if not belongs:
            continue
        event_date = field(event, "date")
        code = field(event, "batch_code", "")
        key = code or f"{base_title(title)}_{event_date.isoformat()}"
        group = classes.get(key)
        if group is None:
            group = classes[key] = {
                "batch_code": code or "No code",
                "title": base_title(title),
                "start_date": event_date,
                "end_date": event_date,
                "trainer": field(event, "trainer", ""),
                "count": 0,
                "sessions": [],
            }
        group["start_date"] = min(group["start_date"], event_date)
        group["end_date"] = max(group["end_date"], event_date)
        group["count"] += 1
        group["sessions"].append(event)

    for group in classes.values():
        group["sessions"].sort(key=lambda ev: field(ev, "date"))
    return sorted(classes.values(), key=lambda g: g["start_date"], reverse=True)
