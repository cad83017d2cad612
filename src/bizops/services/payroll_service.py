"""Monthly payroll service.

Commission and total payout are computed on read by
:mod:`bizops.calc.payroll`. ``generate`` pulls each seller's KPI inputs
from the CRM ledger and upserts their line for the month.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.config import get_settings
from bizops.errors import ConflictError, NotFoundError
from bizops.models.customer import Customer, FinanceTransaction
from bizops.models.payroll import PayrollEntry
from bizops.services.customer_service import month_range
from bizops.services.settings_service import SettingsService
from bizops.services.user_service import UserService

logger = logging.getLogger(__name__)

SALES_ROLE_LABEL = {"SALE": "Sale", "SALE_LEADER": "Sale Leader"}


class PayrollService:
    """Service for payroll CRUD and KPI generation.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_entries(self, month: str) -> list[PayrollEntry]:
        result = await self.db.execute(
            select(PayrollEntry)
            .where(PayrollEntry.month == month)
            .order_by(PayrollEntry.staff_name.asc())
        )
        return list(result.scalars().all())

    async def get_entry(self, entry_id: str) -> PayrollEntry | None:
        result = await self.db.execute(select(PayrollEntry).where(PayrollEntry.id == entry_id))
        return result.scalar_one_or_none()

    async def create_entry(
        self,
        month: str,
        staff_name: str,
        staff_email: str | None = None,
        role: str = "Sale",
        base_salary: int = 0,
        sales_amount: int = 0,
        orders: int = 0,
        commission_rate: float | None = None,
        note: str = "",
    ) -> PayrollEntry:
        """Add a salary line.

        Raises:
            ConflictError: If the staff member already has a line for the month.
        """
        entry = PayrollEntry(
            month=month,
            staff_name=staff_name,
            staff_email=staff_email.lower() if staff_email else None,
            role=role,
            base_salary=base_salary,
            sales_amount=sales_amount,
            orders=orders,
            commission_rate=(
                commission_rate
                if commission_rate is not None
                else get_settings().default_commission_rate
            ),
            note=note,
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(
                f"Payroll line for '{staff_email}' in {month} already exists"
            ) from exc
        await self.db.refresh(entry)
        return entry

    async def update_entry(self, entry_id: str, **kwargs: object) -> PayrollEntry:
        entry = await self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Payroll entry not found: {entry_id}")

        for field, value in kwargs.items():
            if value is not None:
                setattr(entry, field, value)

        await self.db.commit()
        await self.db.refresh(entry)
        return entry

    async def delete_entry(self, entry_id: str) -> None:
        entry = await self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Payroll entry not found: {entry_id}")
        await self.db.delete(entry)
        await self.db.commit()

    async def generate(self, month: str) -> list[PayrollEntry]:
        """Compute KPI inputs for every active seller and upsert their lines.

        ``sales_amount`` is the INCOME collected in the month from the
        seller's customers; ``orders`` counts the seller's non-cancelled
        customers booked in the month. Manually set base salary, rate and
        note on an existing line are kept.
        """
        start, end = month_range(month)
        staff = await UserService(self.db).list_sales_team()

        sales_rows = await self.db.execute(
            select(Customer.sale_id, func.sum(FinanceTransaction.amount))
            .join(Customer, FinanceTransaction.customer_id == Customer.id)
            .where(
                FinanceTransaction.type == "INCOME",
                FinanceTransaction.occurred_at >= start,
                FinanceTransaction.occurred_at < end,
            )
            .group_by(Customer.sale_id)
        )
        sales = {sale_id: int(total or 0) for sale_id, total in sales_rows.all()}

        order_rows = await self.db.execute(
            select(Customer.sale_id, func.count(Customer.id))
            .where(
                Customer.status != "CANCEL",
                Customer.created_at >= start,
                Customer.created_at < end,
            )
            .group_by(Customer.sale_id)
        )
        orders = {sale_id: int(count) for sale_id, count in order_rows.all()}

        existing = {
            entry.staff_email: entry
            for entry in await self.list_entries(month)
            if entry.staff_email
        }
        config = await SettingsService(self.db).get_config()
        base_default = int(config["salary"]["base_salary_default"])
        rate_default = get_settings().default_commission_rate

        entries = []
        for user in staff:
            entry = existing.get(user.email)
            if entry is None:
                entry = PayrollEntry(
                    month=month,
                    staff_name=user.name,
                    staff_email=user.email,
                    role=SALES_ROLE_LABEL.get(user.role, "Sale"),
                    base_salary=base_default,
                    commission_rate=rate_default,
                    note="",
                )
                self.db.add(entry)
            entry.sales_amount = sales.get(user.email, 0)
            entry.orders = orders.get(user.email, 0)
            entries.append(entry)

        await self.db.commit()
        for entry in entries:
            await self.db.refresh(entry)
        logger.info("Generated payroll for %s: %d lines", month, len(entries))
        return entries
