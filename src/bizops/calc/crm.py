"""Customer status, payment and pipeline statistics rules."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from bizops.calc._fields import field, num

MANUAL_STATUSES = ("AUTO", "RESERVED", "CANCEL")
STICKY_STATUSES = ("RESERVED", "CANCEL")


@dataclass(frozen=True)
class PaymentResult:
    paid_amount: int
    debt_amount: int
    status: str


def derive_status(full_price: int, paid_amount: int, manual: str = "AUTO") -> str:
    """Resolve a customer's status from payment progress or a manual override."""
    if manual in STICKY_STATUSES:
        return manual
    if paid_amount >= full_price:
        return "PAID"
    if paid_amount > 0:
        return "DEPOSIT"
    return "NEW"


def manual_status_of(status: str) -> str:
    """Map a stored status back to the manual override that would produce it."""
    return status if status in STICKY_STATUSES else "AUTO"


def apply_payment(full_price: int, paid_amount: int, status: str, amount: int) -> PaymentResult:
    """Record an additional payment.

    Raises:
        ValueError: If the amount is not positive or would overpay.
    """
    if amount <= 0:
        raise ValueError("Payment amount must be positive")
    if paid_amount + amount > full_price:
        raise ValueError("Cannot collect more than the outstanding debt")

    new_paid = paid_amount + amount
    new_debt = full_price - new_paid
    new_status = status
    if status not in STICKY_STATUSES:
        if new_debt <= 0:
            new_status = "PAID"
        elif new_paid > 0:
            new_status = "DEPOSIT"
    return PaymentResult(paid_amount=new_paid, debt_amount=new_debt, status=new_status)


def matches_status_filter(customer: Any, status_filter: str) -> bool:
    """Apply the pipeline status filter (ALL, DEBT, PAID, RESERVED, CANCEL)."""
    status = field(customer, "status")
    if status_filter == "ALL":
        return True
    if status_filter == "DEBT":
        return num(customer, "debt_amount") > 0 and status != "CANCEL"
    return status == status_filter


def stats(customers: Iterable[Any]) -> dict[str, int]:
    """Revenue actually collected, outstanding debt and headcount, ignoring cancellations."""
    result = {"real_revenue": 0, "total_debt": 0, "customers": 0}
    for customer in customers:
        if field(customer, "status") == "CANCEL":
            continue
        result["real_revenue"] += num(customer, "paid_amount")
        result["total_debt"] += num(customer, "debt_amount")
        result["customers"] += 1
    return result
