"""Pydantic v2 schemas for monthly payroll."""

from __future__ import annotations

from pydantic import BaseModel, Field

from bizops.schemas.common import Amount, Month


class CreatePayrollRequest(BaseModel):
    month: Month
    staff_name: str = Field(..., min_length=1, max_length=100)
    staff_email: str | None = None
    role: str = Field(default="Sale", max_length=50)
    base_salary: Amount = 0
    sales_amount: Amount = 0
    orders: int = Field(default=0, ge=0)
    commission_rate: float | None = Field(default=None, ge=0, le=1)
    note: str = ""


class UpdatePayrollRequest(BaseModel):
    staff_name: str | None = Field(default=None, min_length=1, max_length=100)
    role: str | None = Field(default=None, max_length=50)
    base_salary: Amount | None = None
    sales_amount: Amount | None = None
    orders: int | None = Field(default=None, ge=0)
    commission_rate: float | None = Field(default=None, ge=0, le=1)
    note: str | None = None


class GeneratePayrollRequest(BaseModel):
    month: Month
