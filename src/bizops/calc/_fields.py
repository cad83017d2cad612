from collections.abc import Mapping
from typing import Any


def field(row: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an attribute-bearing object."""
    if isinstance(row, Mapping):
        value = row.get(name, default)
    else:
        value = getattr(row, name, default)
    return default if value is None else value


def num(row: Any, name: str) -> int | float:
    """Read a numeric field, treating missing and None as 0."""
    return field(row, name, 0) or 0
