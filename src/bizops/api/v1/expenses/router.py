"""Spending book endpoints with admin approval."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_current_principal, get_db, get_feed, service_errors
from bizops.models.expense import Expense
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.expense import (
    CreateExpenseRequest,
    ReviewExpenseRequest,
    UpdateExpenseRequest,
)
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.services.activity_service import ActivityService
from bizops.services.expense_service import ExpenseService
from bizops.services.feed import FeedPublisher

router = APIRouter()


def _expense_to_attrs(expense: Expense) -> dict:
    return {
        "spent_on": expense.spent_on.isoformat(),
        "category": expense.category,
        "content": expense.content,
        "amount": expense.amount,
        "requested_by": expense.requested_by,
        "requester_name": expense.requester_name,
        "note": expense.note,
        "status": expense.status,
        "reviewed_by": expense.reviewed_by,
        "reviewed_at": expense.reviewed_at.isoformat() if expense.reviewed_at else None,
        "review_note": expense.review_note,
        "created_at": expense.created_at.isoformat(),
        "updated_at": expense.updated_at.isoformat(),
    }


def _expense_resource(expense: Expense) -> JSONAPIResource:
    return JSONAPIResource(type="expenses", id=str(expense.id), attributes=_expense_to_attrs(expense))


async def _review(
    expense_id: str,
    approve: bool,
    body: JSONAPIRequest[ReviewExpenseRequest],
    principal: Principal,
    db: AsyncSession,
    feed: FeedPublisher,
) -> JSONAPISingleResponse:
    note = body.data.attributes.note
    with service_errors():
        expense, tx = await ExpenseService(db).review(principal, expense_id, approve, note)
    await ActivityService(db).record(
        principal.email,
        "expense_approved" if approve else "expense_rejected",
        "expenses",
        expense_id,
        f"{expense.status} {expense.amount} for {expense.content}",
    )
    attrs = _expense_to_attrs(expense)
    await feed.publish("expenses", "updated", str(expense.id), attrs)
    if tx is not None:
        await feed.publish(
            "transactions",
            "created",
            str(tx.id),
            {"reference": tx.reference, "amount": tx.amount, "type": tx.type, "note": tx.note},
        )
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="expenses", id=str(expense.id), attributes=attrs)
    )


@router.post("", status_code=201)
async def create_expense(
    body: JSONAPIRequest[CreateExpenseRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """File a spending request; it starts PENDING."""
    with service_errors():
        expense = await ExpenseService(db).create_expense(
            principal, **body.data.attributes.model_dump()
        )
    attrs = _expense_to_attrs(expense)
    await feed.publish("expenses", "created", str(expense.id), attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="expenses", id=str(expense.id), attributes=attrs)
    )


@router.get("")
async def list_expenses(
    status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    requester: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List expenses newest first. Non-admins only see their own requests."""
    with service_errors():
        expenses = await ExpenseService(db).list_expenses(
            principal, status, category, month, requester
        )
    return JSONAPIListResponse(
        data=[_expense_resource(e) for e in expenses],
        meta={"total": len(expenses), "amount": sum(e.amount for e in expenses)},
    )


@router.get("/summary")
async def expense_summary(
    month: str = Query(..., pattern=MONTH_PATTERN),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    summary = await ExpenseService(db).summary(month)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="expense-summaries", id=month, attributes=summary)
    )


@router.get("/{expense_id}")
async def get_expense(
    expense_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    expense = await ExpenseService(db).get_expense(expense_id)
    if expense is None or (not principal.is_admin and expense.requested_by != principal.email):
        raise HTTPException(status_code=404, detail="Expense not found")
    return JSONAPISingleResponse(data=_expense_resource(expense))


@router.patch("/{expense_id}")
async def update_expense(
    expense_id: str,
    body: JSONAPIRequest[UpdateExpenseRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        expense = await ExpenseService(db).update_expense(principal, expense_id, **update_data)
    attrs = _expense_to_attrs(expense)
    await feed.publish("expenses", "updated", str(expense.id), attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="expenses", id=str(expense.id), attributes=attrs)
    )


@router.post("/{expense_id}/approve")
async def approve_expense(
    expense_id: str,
    body: JSONAPIRequest[ReviewExpenseRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Approve a PENDING expense and book it in the ledger (ADMIN)."""
    return await _review(expense_id, True, body, principal, db, feed)


@router.post("/{expense_id}/reject")
async def reject_expense(
    expense_id: str,
    body: JSONAPIRequest[ReviewExpenseRequest],
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Reject a PENDING expense (ADMIN)."""
    return await _review(expense_id, False, body, principal, db, feed)


@router.delete("/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await ExpenseService(db).delete_expense(principal, expense_id)
    await feed.publish("expenses", "deleted", expense_id)
