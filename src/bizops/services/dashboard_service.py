"""Monthly financial dashboard assembled from live data."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc.dashboard import build_summary, month_bounds
from bizops.models.ads import AdCampaign
from bizops.models.customer import Customer, FinanceTransaction
from bizops.models.expense import Expense
from bizops.models.payroll import PayrollEntry
from bizops.services.customer_service import month_range


class DashboardService:
    """Loads one month of data and hands it to :func:`build_summary`.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def summary(self, month: str) -> dict:
        first, following = month_bounds(month)
        start, end = month_range(month)

        ads = await self.db.execute(
            select(AdCampaign).where(AdCampaign.date >= first, AdCampaign.date < following)
        )
        transactions = await self.db.execute(
            select(FinanceTransaction).where(
                FinanceTransaction.occurred_at >= start, FinanceTransaction.occurred_at < end
            )
        )
        customers = await self.db.execute(select(Customer))
        expenses = await self.db.execute(
            select(Expense).where(Expense.spent_on >= first, Expense.spent_on < following)
        )
        payroll = await self.db.execute(select(PayrollEntry).where(PayrollEntry.month == month))

        return build_summary(
            month,
            list(ads.scalars().all()),
            transactions.scalars().all(),
            list(customers.scalars().all()),
            expenses.scalars().all(),
            payroll.scalars().all(),
        )
