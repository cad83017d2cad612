"""Shared field types for request schemas."""

from __future__ import annotations

from typing import Annotated

from pydantic import BeforeValidator, Field

from bizops.calc.formatting import parse_amount

#: Non-negative VND amount; accepts ints or typed strings like "3.500.000".
Amount = Annotated[int, BeforeValidator(parse_amount), Field(ge=0)]

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

#: Calendar month in ``YYYY-MM`` form.
Month = Annotated[str, Field(pattern=MONTH_PATTERN)]

#: Wall-clock time in ``HH:MM`` form.
ClockTime = Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]
