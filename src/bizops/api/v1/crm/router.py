"""Sales CRM endpoints: customers, payments, sellers and the finance ledger."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require, service_errors
from bizops.calc import crm as crm_calc
from bizops.models.customer import Customer, FinanceTransaction
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.customer import (
    AddPaymentRequest,
    CreateCustomerRequest,
    UpdateCustomerRequest,
)
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.services.customer_service import CustomerService
from bizops.services.feed import FeedPublisher
from bizops.services.user_service import UserService

router = APIRouter()

view_crm = require("crm", "view")
edit_crm = require("crm", "edit")
delete_crm = require("crm", "delete")


def _customer_to_attrs(customer: Customer) -> dict:
    return {
        "name": customer.name,
        "phone": customer.phone,
        "course": customer.course,
        "full_price": customer.full_price,
        "paid_amount": customer.paid_amount,
        "debt_amount": customer.debt_amount,
        "status": customer.status,
        "note": customer.note,
        "source_ad_id": customer.source_ad_id,
        "source_ad_name": customer.source_ad_name,
        "sale_id": customer.sale_id,
        "sale_name": customer.sale_name,
        "created_at": customer.created_at.isoformat(),
        "updated_at": customer.updated_at.isoformat(),
    }


def _transaction_to_attrs(tx: FinanceTransaction) -> dict:
    return {
        "reference": tx.reference,
        "occurred_at": tx.occurred_at.isoformat(),
        "amount": tx.amount,
        "type": tx.type,
        "note": tx.note,
        "customer_id": tx.customer_id,
        "customer_name": tx.customer_name,
        "course": tx.course,
    }


def _customer_resource(customer: Customer) -> JSONAPIResource:
    return JSONAPIResource(
        type="customers", id=str(customer.id), attributes=_customer_to_attrs(customer)
    )


def _transaction_resource(tx: FinanceTransaction) -> JSONAPIResource:
    return JSONAPIResource(
        type="transactions", id=str(tx.id), attributes=_transaction_to_attrs(tx)
    )


async def _publish_transaction(feed: FeedPublisher, tx: FinanceTransaction | None) -> None:
    if tx is not None:
        await feed.publish("transactions", "created", str(tx.id), _transaction_to_attrs(tx))


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


@router.get("/customers")
async def list_customers(
    course: str = Query(default="ALL"),
    status: str = Query(default="ALL"),
    sale_id: str | None = Query(default=None),
    q: str | None = Query(default=None),
    principal: Principal = Depends(view_crm),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List customers newest first; ``meta.stats`` covers the same filter."""
    customers = await CustomerService(db).list_customers(course, status, sale_id, q)
    return JSONAPIListResponse(
        data=[_customer_resource(c) for c in customers],
        meta={"total": len(customers), "stats": crm_calc.stats(customers)},
    )


@router.post("/customers", status_code=201)
async def create_customer(
    body: JSONAPIRequest[CreateCustomerRequest],
    principal: Principal = Depends(edit_crm),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Book an order; a first payment is written to the ledger."""
    with service_errors():
        customer, tx = await CustomerService(db).create_customer(
            principal, **body.data.attributes.model_dump()
        )
    attrs = _customer_to_attrs(customer)
    await feed.publish("customers", "created", str(customer.id), attrs)
    await _publish_transaction(feed, tx)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="customers", id=str(customer.id), attributes=attrs)
    )


@router.get("/customers/{customer_id}")
async def get_customer(
    customer_id: str,
    principal: Principal = Depends(view_crm),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    customer = await CustomerService(db).get_customer(customer_id)
    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return JSONAPISingleResponse(data=_customer_resource(customer))


@router.patch("/customers/{customer_id}")
async def update_customer(
    customer_id: str,
    body: JSONAPIRequest[UpdateCustomerRequest],
    principal: Principal = Depends(edit_crm),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Edit a customer; status and debt are re-derived."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        customer = await CustomerService(db).update_customer(principal, customer_id, **update_data)
    attrs = _customer_to_attrs(customer)
    await feed.publish("customers", "updated", str(customer.id), attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="customers", id=str(customer.id), attributes=attrs)
    )


@router.post("/customers/{customer_id}/payments", status_code=201)
async def add_payment(
    customer_id: str,
    body: JSONAPIRequest[AddPaymentRequest],
    principal: Principal = Depends(edit_crm),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Collect a further payment; returns the ledger entry and the updated customer."""
    attrs = body.data.attributes
    with service_errors():
        customer, tx = await CustomerService(db).add_payment(customer_id, attrs.amount, attrs.note)
    customer_attrs = _customer_to_attrs(customer)
    await feed.publish("customers", "updated", str(customer.id), customer_attrs)
    await _publish_transaction(feed, tx)
    return JSONAPISingleResponse(
        data=_transaction_resource(tx),
        meta={"customer": customer_attrs},
    )


@router.get("/customers/{customer_id}/transactions")
async def list_customer_transactions(
    customer_id: str,
    principal: Principal = Depends(view_crm),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    transactions = await CustomerService(db).list_customer_transactions(customer_id)
    return JSONAPIListResponse(
        data=[_transaction_resource(tx) for tx in transactions],
        meta={"total": len(transactions)},
    )


@router.delete("/customers/{customer_id}", status_code=204)
async def delete_customer(
    customer_id: str,
    principal: Principal = Depends(delete_crm),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await CustomerService(db).delete_customer(customer_id)
    await feed.publish("customers", "deleted", customer_id)


# ---------------------------------------------------------------------------
# Sellers and ledger
# ---------------------------------------------------------------------------


@router.get("/sellers")
async def list_sellers(
    principal: Principal = Depends(view_crm),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    sellers = await UserService(db).list_sellers()
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(
                type="sellers",
                id=str(u.id),
                attributes={"email": u.email, "name": u.name, "role": u.role, "is_active": u.is_active},
            )
            for u in sellers
        ],
        meta={"total": len(sellers)},
    )


@router.get("/transactions")
async def list_transactions(
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    tx_type: str | None = Query(default=None, alias="type", pattern="^(INCOME|EXPENSE)$"),
    principal: Principal = Depends(view_crm),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """The finance ledger, newest first, optionally for one month."""
    transactions = await CustomerService(db).list_transactions(month, tx_type)
    income = sum(tx.amount for tx in transactions if tx.type == "INCOME")
    expense = sum(tx.amount for tx in transactions if tx.type == "EXPENSE")
    return JSONAPIListResponse(
        data=[_transaction_resource(tx) for tx in transactions],
        meta={"total": len(transactions), "income": income, "expense": expense},
    )
