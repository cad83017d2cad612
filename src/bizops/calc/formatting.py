"""Money parsing and display helpers for VND amounts."""

from __future__ import annotations

import re

_NON_DIGIT = re.compile(r"\D")


def parse_amount(value: object) -> int:
    """Parse a user-typed amount such as ``"3.500.000 VND"`` into an int.

    Separators and units are dropped; an empty result is 0. A leading
    minus sign is rejected rather than silently dropped.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError("Amount cannot be a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return round(value)
    text = str(value).strip()
    if text.startswith("-"):
        raise ValueError("Amount cannot be negative")
    digits = _NON_DIGIT.sub("", text)
    return int(digits) if digits else 0


def format_vnd(amount: int) -> str:
    """Format an amount with dot thousands separators, e.g. ``3.500.000``."""
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(int(amount)):,}".replace(",", ".")
