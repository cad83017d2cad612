"""Monthly payroll endpoints (ADMIN)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require, service_errors
from bizops.calc import payroll as payroll_calc
from bizops.models.payroll import PayrollEntry
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.payroll import (
    CreatePayrollRequest,
    GeneratePayrollRequest,
    UpdatePayrollRequest,
)
from bizops.services.feed import FeedPublisher
from bizops.services.payroll_service import PayrollService

router = APIRouter()

manage_payroll = require("payroll", "manage")


def _entry_to_attrs(entry: PayrollEntry) -> dict:
    """Map a PayrollEntry to attributes, including commission and total payout."""
    return {
        "month": entry.month,
        "staff_name": entry.staff_name,
        "staff_email": entry.staff_email,
        "role": entry.role,
        "base_salary": entry.base_salary,
        "sales_amount": entry.sales_amount,
        "orders": entry.orders,
        "commission_rate": entry.commission_rate,
        "note": entry.note,
        **payroll_calc.calculate_entry(entry),
        "created_at": entry.created_at.isoformat(),
        "updated_at": entry.updated_at.isoformat(),
    }


def _entry_resource(entry: PayrollEntry) -> JSONAPIResource:
    return JSONAPIResource(type="payroll", id=str(entry.id), attributes=_entry_to_attrs(entry))


@router.get("")
async def list_payroll(
    month: str = Query(..., pattern=MONTH_PATTERN),
    principal: Principal = Depends(manage_payroll),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List a month's salary lines with the month summary in ``meta``."""
    entries = await PayrollService(db).list_entries(month)
    return JSONAPIListResponse(
        data=[_entry_resource(e) for e in entries],
        meta={"total": len(entries), "summary": payroll_calc.summarize(entries)},
    )


@router.post("", status_code=201)
async def create_entry(
    body: JSONAPIRequest[CreatePayrollRequest],
    principal: Principal = Depends(manage_payroll),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    with service_errors():
        entry = await PayrollService(db).create_entry(**body.data.attributes.model_dump())
    attrs = _entry_to_attrs(entry)
    await feed.publish("payroll", "created", str(entry.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="payroll", id=str(entry.id), attributes=attrs))


@router.post("/generate")
async def generate_payroll(
    body: JSONAPIRequest[GeneratePayrollRequest],
    principal: Principal = Depends(manage_payroll),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPIListResponse:
    """Recompute every seller's KPI inputs for the month from the CRM."""
    month = body.data.attributes.month
    entries = await PayrollService(db).generate(month)
    await feed.publish("payroll", "reset", None, {"month": month})
    return JSONAPIListResponse(
        data=[_entry_resource(e) for e in entries],
        meta={"total": len(entries), "summary": payroll_calc.summarize(entries)},
    )


@router.patch("/{entry_id}")
async def update_entry(
    entry_id: str,
    body: JSONAPIRequest[UpdatePayrollRequest],
    principal: Principal = Depends(manage_payroll),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        entry = await PayrollService(db).update_entry(entry_id, **update_data)
    attrs = _entry_to_attrs(entry)
    await feed.publish("payroll", "updated", str(entry.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="payroll", id=str(entry.id), attributes=attrs))


@router.delete("/{entry_id}", status_code=204)
async def delete_entry(
    entry_id: str,
    principal: Principal = Depends(manage_payroll),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await PayrollService(db).delete_entry(entry_id)
    await feed.publish("payroll", "deleted", entry_id)
