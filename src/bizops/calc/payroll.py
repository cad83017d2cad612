"""Salary arithmetic: commission on sales plus base pay."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from bizops.calc._fields import num


def commission(sales_amount: int, rate: float) -> int:
    return round(sales_amount * rate)


def calculate_entry(entry: Any) -> dict[str, int]:
    """Commission and total payout for one payroll line."""
    comm = commission(num(entry, "sales_amount"), num(entry, "commission_rate"))
    return {"commission": comm, "total": num(entry, "base_salary") + comm}


def summarize(entries: Iterable[Any]) -> dict[str, int]:
    totals = {"base_salary": 0, "commission": 0, "sales_amount": 0, "orders": 0, "total": 0, "headcount": 0}
    for entry in entries:
        computed = calculate_entry(entry)
        totals["base_salary"] += num(entry, "base_salary")
        totals["sales_amount"] += num(entry, "sales_amount")
        totals["orders"] += num(entry, "orders")
        totals["commission"] += computed["commission"]
        totals["total"] += computed["total"]
        totals["headcount"] += 1
    return totals
