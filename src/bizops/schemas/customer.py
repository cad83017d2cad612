"""Pydantic v2 schemas for the sales CRM (customers and payments)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from bizops.schemas.common import Amount

MANUAL_STATUS_PATTERN = "^(AUTO|RESERVED|CANCEL)$"


class CreateCustomerRequest(BaseModel):
    """Request body for booking a new order.

    ``sale_id`` is the seller's email. Sellers who cannot assign orders to
    others may omit it; the order is then booked under their own name.
    ``manual_status`` pins the status to RESERVED or CANCEL; under AUTO
    it follows the payment progress.
    """

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)
    course: str = Field(default="K36", max_length=50)
    full_price: Amount = 5_000_000
    paid_amount: Amount = 0
    note: str = ""
    source_ad_id: str | None = None
    sale_id: str | None = None
    manual_status: str = Field(default="AUTO", pattern=MANUAL_STATUS_PATTERN)


class UpdateCustomerRequest(BaseModel):
    """Partial update; status and debt are re-derived from the result."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    phone: str | None = Field(default=None, min_length=1, max_length=50)
    course: str | None = Field(default=None, max_length=50)
    full_price: Amount | None = None
    paid_amount: Amount | None = None
    note: str | None = None
    source_ad_id: str | None = None
    sale_id: str | None = None
    manual_status: str | None = Field(default=None, pattern=MANUAL_STATUS_PATTERN)


class AddPaymentRequest(BaseModel):
    amount: Amount
    note: str = "Additional payment"
