"""Per-row and aggregate metrics for the ads spend sheet."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from bizops.calc._fields import num

SUMMED_FIELDS = ("spent", "mess", "orders_mong", "orders_thanh", "revenue", "profit")


def calculate_row(row: Any) -> dict[str, float | int]:
    """Compute derived metrics for one ad row.

    Ratios whose denominator is zero are reported as 0.
    """
    spent = num(row, "spent")
    mess = num(row, "mess")
    total_orders = num(row, "orders_mong") + num(row, "orders_thanh")
    revenue = total_orders * num(row, "price_per_course")
    return {
        "total_orders": total_orders,
        "price_per_mess": spent / mess if mess > 0 else 0,
        "close_rate": total_orders / mess * 100 if mess > 0 else 0,
        "revenue": revenue,
        "profit": revenue - spent - num(row, "base_cost"),
        "roas": revenue / spent if spent > 0 else 0,
    }


def summarize(rows: Iterable[Any]) -> dict[str, float | int]:
    """Sum the sheet and derive the ratios from the sums.

    Ratios are recomputed from totals, never averaged across rows.
    """
    totals: dict[str, float | int] = {key: 0 for key in SUMMED_FIELDS}
    for row in rows:
        metrics = calculate_row(row)
        totals["spent"] += num(row, "spent")
        totals["mess"] += num(row, "mess")
        totals["orders_mong"] += num(row, "orders_mong")
        totals["orders_thanh"] += num(row, "orders_thanh")
        totals["revenue"] += metrics["revenue"]
        totals["profit"] += metrics["profit"]

    total_orders = totals["orders_mong"] + totals["orders_thanh"]
    spent = totals["spent"]
    mess = totals["mess"]
    totals["total_orders"] = total_orders
    totals["roas"] = totals["revenue"] / spent if spent > 0 else 0
    totals["close_rate"] = total_orders / mess * 100 if mess > 0 else 0
    totals["price_per_mess"] = spent / mess if mess > 0 else 0
    return totals


def top_by_roas(rows: Iterable[Any], limit: int = 5) -> list[tuple[Any, dict]]:
    """Return the ``limit`` rows with the highest ROAS among rows with spend."""
    scored = [(row, calculate_row(row)) for row in rows if num(row, "spent") > 0]
    scored.sort(key=lambda pair: pair[1]["roas"], reverse=True)
    return scored[:limit]
