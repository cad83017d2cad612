"""Monthly financial roll-up across ads, sales, spending and payroll."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any

from bizops.calc import ads as ads_calc
from bizops.calc import payroll as payroll_calc
from bizops.calc._fields import field, num


def month_bounds(month: str) -> tuple[date, date]:
    """Return ``(first_day, first_day_of_next_month)`` for ``YYYY-MM``.

    Raises:
        ValueError: If ``month`` is not ``YYYY-MM``.
    """
    try:
        year, mon = (int(part) for part in month.split("-"))
        first = date(year, mon, 1)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid month: {month!r}, expected YYYY-MM") from exc
    following = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    return first, following


def month_of(value: date | datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def week_of_month(day: int) -> int:
    """Days 1-7 are week 1, 8-14 week 2, and so on."""
    return (day - 1) // 7 + 1


def _day_of(value: date | datetime) -> int:
    return value.day


def build_summary(
    month: str,
    ad_rows: Sequence[Any],
    transactions: Iterable[Any],
    customers: Sequence[Any],
    expenses: Iterable[Any],
    payroll_entries: Iterable[Any],
) -> dict[str, Any]:
    """Assemble the dashboard for one month.

    ``ad_rows``, ``transactions`` and ``expenses`` are expected to be
    already restricted to the month; ``customers`` is the whole book so
    that outstanding debt is complete.
    """
    first, following = month_bounds(month)
    weeks = week_of_month((following - first).days)
    trend = {
        week: {"week": week, "ads_spent": 0, "income": 0, "net": 0}
        for week in range(1, weeks + 1)
    }

    ads = ads_calc.summarize(ad_rows)
    for row in ad_rows:
        trend[week_of_month(_day_of(field(row, "date")))]["ads_spent"] += num(row, "spent")

    collected = 0
    for tx in transactions:
        if field(tx, "type") != "INCOME":
            continue
        collected += num(tx, "amount")
        trend[week_of_month(_day_of(field(tx, "occurred_at")))]["income"] += num(tx, "amount")
    for bucket in trend.values():
        bucket["net"] = bucket["income"] - bucket["ads_spent"]

    by_status: dict[str, int] = {}
    outstanding = 0
    new_customers = 0
    paid_up = 0
    for customer in customers:
        status = field(customer, "status", "NEW")
        by_status[status] = by_status.get(status, 0) + 1
        if status != "CANCEL":
            outstanding += num(customer, "debt_amount")
        created = field(customer, "created_at")
        if created is not None and month_of(created) == month:
            new_customers += 1
        if status == "PAID":
            paid_up += 1

    approved_total = 0
    pending = 0
    for expense in expenses:
        if field(expense, "status") == "APPROVED":
            approved_total += num(expense, "amount")
        elif field(expense, "status") == "PENDING":
            pending += 1

    payroll = payroll_calc.summarize(payroll_entries)

    top = [
        {
            "id": str(field(row, "id", "")),
            "content_name": field(row, "content_name", ""),
            "course": field(row, "course", ""),
            "spent": num(row, "spent"),
            "revenue": metrics["revenue"],
            "roas": metrics["roas"],
            "status": field(row, "status", ""),
        }
        for row, metrics in ads_calc.top_by_roas(ad_rows)
    ]

    return {
        "month": month,
        "ads": ads,
        "sales": {
            "collected": collected,
            "outstanding_debt": outstanding,
            "new_customers": new_customers,
            "by_status": by_status,
        },
        "spending": {"approved_total": approved_total, "pending_count": pending},
        "payroll": {"total": payroll["total"], "headcount": payroll["headcount"]},
        "net": collected - ads["spent"] - approved_total - payroll["total"],
        "trend": list(trend.values()),
        "funnel": {
            "messages": ads["mess"],
            "orders": ads["total_orders"],
            "paid_customers": paid_up,
        },
        "top_campaigns": top,
    }
