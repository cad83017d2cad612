"""Sales CRM service: customers, payments and the finance ledger.

Status and debt are always re-derived from ``full_price``/``paid_amount``
and the manual override via :mod:`bizops.calc.crm`. Every collected
payment is written to the ledger as an ``INCOME`` transaction in the same
commit as the customer change.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, time as clock, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc import crm as crm_calc
from bizops.calc.dashboard import month_bounds
from bizops.calc.formatting import format_vnd
from bizops.errors import NotFoundError
from bizops.models.ads import AdCampaign
from bizops.models.customer import Customer, FinanceTransaction
from bizops.models.user import User
from bizops.permissions import Principal

logger = logging.getLogger(__name__)

INITIAL_PAYMENT_NOTE = "Initial payment"
ADDITIONAL_PAYMENT_NOTE = "Additional payment"

_reference_lock = threading.Lock()
_last_reference_ms = 0


def new_reference() -> str:
    """Return a ledger reference ``TRX_<epoch-ms>``, unique within the process."""
    global _last_reference_ms
    with _reference_lock:
        now_ms = time.time_ns() // 1_000_000
        _last_reference_ms = max(now_ms, _last_reference_ms + 1)
        return f"TRX_{_last_reference_ms}"


def month_range(month: str) -> tuple[datetime, datetime]:
    """UTC datetimes bounding ``YYYY-MM`` (inclusive start, exclusive end)."""
    first, following = month_bounds(month)
    return (
        datetime.combine(first, clock.min, tzinfo=timezone.utc),
        datetime.combine(following, clock.min, tzinfo=timezone.utc),
    )


class CustomerService:
    """Service for customer CRUD, payments and ledger queries.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _seller_name(self, email: str) -> str:
        result = await self.db.execute(select(User.name).where(User.email == email))
        name = result.scalar_one_or_none()
        return name or email.split("@")[0]

    async def _ad_name(self, ad_id: str | None) -> str:
        if not ad_id:
            return ""
        result = await self.db.execute(
            select(AdCampaign.content_name).where(AdCampaign.id == ad_id)
        )
        return result.scalar_one_or_none() or ""

    def _transaction(self, customer: Customer, amount: int, note: str) -> FinanceTransaction:
        tx = FinanceTransaction(
            reference=new_reference(),
            occurred_at=datetime.now(timezone.utc),
            amount=amount,
            type="INCOME",
            note=note,
            customer_id=customer.id,
            customer_name=customer.name,
            course=customer.course,
        )
        self.db.add(tx)
        return tx

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    async def list_customers(
        self,
        course: str = "ALL",
        status: str = "ALL",
        sale_id: str | None = None,
        q: str | None = None,
    ) -> list[Customer]:
        """List customers newest first.

        ``status`` accepts ``DEBT`` (outstanding debt, not cancelled) in
        addition to the stored statuses.
        """
        query = select(Customer)
        if course and course != "ALL":
            query = query.where(Customer.course == course)
        if sale_id:
            query = query.where(Customer.sale_id == sale_id)
        if q:
            term = q.strip().lower()
            query = query.where(
                or_(
                    func.lower(Customer.name).contains(term, autoescape=True),
                    Customer.phone.contains(term, autoescape=True),
                )
            )
        query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
        result = await self.db.execute(query)
        customers = list(result.scalars().all())
        return [c for c in customers if crm_calc.matches_status_filter(c, status or "ALL")]

    async def get_customer(self, customer_id: str) -> Customer | None:
        result = await self.db.execute(select(Customer).where(Customer.id == customer_id))
        return result.scalar_one_or_none()

    async def create_customer(
        self,
        principal: Principal,
        name: str,
        phone: str,
        course: str,
        full_price: int = 5_000_000,
        paid_amount: int = 0,
        note: str = "",
        source_ad_id: str | None = None,
        sale_id: str | None = None,
        manual_status: str = "AUTO",
    ) -> tuple[Customer, FinanceTransaction | None]:
        """Book a new order.

        Sellers without the assign permission always book under their own
        email. A first payment above zero is recorded in the ledger.

        Raises:
            ValueError: If the first payment exceeds the full price.
        """
        if paid_amount > full_price:
            raise ValueError("Cannot collect more than the outstanding debt")
        if not sale_id or not principal.can("crm", "assign"):
            sale_id = principal.email

        customer = Customer(
            name=name.strip(),
            phone=phone.strip(),
            course=course,
            full_price=full_price,
            paid_amount=paid_amount,
            debt_amount=full_price - paid_amount,
            status=crm_calc.derive_status(full_price, paid_amount, manual_status),
            note=note,
            source_ad_id=source_ad_id or None,
            source_ad_name=await self._ad_name(source_ad_id),
            sale_id=sale_id,
            sale_name=await self._seller_name(sale_id),
        )
        self.db.add(customer)
        await self.db.flush()

        tx = None
        if paid_amount > 0:
            tx = self._transaction(customer, paid_amount, INITIAL_PAYMENT_NOTE)

        await self.db.commit()
        await self.db.refresh(customer)
        logger.info("Booked customer %s for %s by %s", customer.id, customer.course, sale_id)
        return customer, tx

    async def update_customer(
        self, principal: Principal, customer_id: str, **kwargs: object
    ) -> Customer:
        """Partial update; status and debt are re-derived afterwards.

        Raises:
            NotFoundError: If the customer is not found.
            PermissionError: If the seller is changed without the assign permission.
            ValueError: If the paid amount would exceed the full price.
        """
        customer = await self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}")

        manual = kwargs.pop("manual_status", None) or crm_calc.manual_status_of(customer.status)
        sale_id = kwargs.pop("sale_id", None)
        if sale_id and sale_id != customer.sale_id:
            principal.require("crm", "assign")
            customer.sale_id = sale_id
            customer.sale_name = await self._seller_name(sale_id)
        if "source_ad_id" in kwargs:
            ad_id = kwargs.pop("source_ad_id")
            customer.source_ad_id = ad_id or None
            customer.source_ad_name = await self._ad_name(ad_id)

        for field, value in kwargs.items():
            if value is not None:
                setattr(customer, field, value)

        if customer.paid_amount > customer.full_price:
            await self.db.rollback()
            raise ValueError("Cannot collect more than the outstanding debt")
        customer.debt_amount = customer.full_price - customer.paid_amount
        customer.status = crm_calc.derive_status(customer.full_price, customer.paid_amount, manual)

        await self.db.commit()
        await self.db.refresh(customer)
        return customer

    async def add_payment(
        self, customer_id: str, amount: int, note: str = ADDITIONAL_PAYMENT_NOTE
    ) -> tuple[Customer, FinanceTransaction]:
        """Collect a further payment and write it to the ledger.

        Raises:
            NotFoundError: If the customer is not found.
            ValueError: If the amount is not positive or would overpay.
        """
        customer = await self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}")

        result = crm_calc.apply_payment(
            customer.full_price, customer.paid_amount, customer.status, amount
        )
        customer.paid_amount = result.paid_amount
        customer.debt_amount = result.debt_amount
        customer.status = result.status
        tx = self._transaction(customer, amount, note or ADDITIONAL_PAYMENT_NOTE)

        await self.db.commit()
        await self.db.refresh(customer)
        await self.db.refresh(tx)
        logger.info("Collected %s VND from customer %s", format_vnd(amount), customer.id)
        return customer, tx

    async def delete_customer(self, customer_id: str) -> None:
        """Delete a customer. Their ledger entries are kept."""
        customer = await self.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}")
        await self.db.delete(customer)
        await self.db.commit()
        logger.info("Deleted customer %s", customer_id)

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    async def list_customer_transactions(self, customer_id: str) -> list[FinanceTransaction]:
        result = await self.db.execute(
            select(FinanceTransaction)
            .where(FinanceTransaction.customer_id == customer_id)
            .order_by(FinanceTransaction.occurred_at.desc())
        )
        return list(result.scalars().all())

    async def list_transactions(
        self, month: str | None = None, tx_type: str | None = None
    ) -> list[FinanceTransaction]:
        """List ledger entries newest first, optionally for one month and type."""
        query = select(FinanceTransaction)
        if month:
            start, end = month_range(month)
            query = query.where(
                FinanceTransaction.occurred_at >= start, FinanceTransaction.occurred_at < end
            )
        if tx_type:
            query = query.where(FinanceTransaction.type == tx_type)
        query = query.order_by(FinanceTransaction.occurred_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())
