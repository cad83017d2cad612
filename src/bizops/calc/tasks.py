"""Task board and daily report helpers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from bizops.calc._fields import field


def is_overdue(deadline: date | None, status: str, today: date) -> bool:
    if deadline is None or status == "DONE":
        return False
    return deadline < today


def checklist_progress(checklist: list[dict] | None) -> int | None:
    """Percent of checklist items done, or None when there is no checklist."""
    if not checklist:
        return None
    done = sum(1 for item in checklist if item.get("done"))
    return round(done / len(checklist) * 100)


def clean_report_items(items: Iterable[Any]) -> list[dict]:
    """Drop report lines whose title is blank and normalize the rest."""
    cleaned = []
    for item in items:
        title = str(field(item, "title", "")).strip()
        if not title:
            continue
        cleaned.append(
            {
                "title": title,
                "note": str(field(item, "note", "")),
                "is_done": bool(field(item, "is_done", False)),
            }
        )
    return cleaned


def is_visible(task: Any, user_email: str, user_team: str, sees_all: bool) -> bool:
    """Leaders see every task; others see their own and their team's."""
    if sees_all:
        return True
    return field(task, "assignee") == user_email or field(task, "department") == user_team
