"""Spending book service with admin approval.

An expense starts PENDING. Only an ADMIN moves it to APPROVED or
REJECTED, and only once; an approval also books an ``EXPENSE`` entry in
the finance ledger.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc.dashboard import month_bounds
from bizops.calc.formatting import format_vnd
from bizops.errors import ConflictError, NotFoundError
from bizops.models.customer import FinanceTransaction
from bizops.models.expense import EXPENSE_STATUSES, Expense
from bizops.permissions import Principal
from bizops.services.customer_service import new_reference
from bizops.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class ExpenseService:
    """Service for expense CRUD, review and monthly summaries.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _check_category(self, category: str) -> None:
        config = await SettingsService(self.db).get_config()
        if category not in config["spending"]["categories"]:
            raise ValueError(f"Unknown expense category: {category}")

    async def create_expense(
        self,
        principal: Principal,
        spent_on: date,
        category: str,
        content: str,
        amount: int,
        note: str = "",
    ) -> Expense:
        """File a spending request under the caller's name.

        Raises:
            ValueError: If the category is not configured.
        """
        await self._check_category(category)
        expense = Expense(
            spent_on=spent_on,
            category=category,
            content=content,
            amount=amount,
            note=note,
            requested_by=principal.email,
            requester_name=principal.name,
            status="PENDING",
        )
        self.db.add(expense)
        await self.db.commit()
        await self.db.refresh(expense)
        logger.info("Expense %s filed by %s for %s VND", expense.id, principal.email, format_vnd(amount))
        return expense

    async def list_expenses(
        self,
        principal: Principal,
        status: str | None = None,
        category: str | None = None,
        month: str | None = None,
        requester: str | None = None,
    ) -> list[Expense]:
        """List expenses newest first. Non-admins only see their own."""
        query = select(Expense)
        if not principal.is_admin:
            query = query.where(Expense.requested_by == principal.email)
        elif requester:
            query = query.where(Expense.requested_by == requester)
        if status and status != "ALL":
            if status not in EXPENSE_STATUSES:
                raise ValueError(f"Unknown expense status: {status}")
            query = query.where(Expense.status == status)
        if category and category != "ALL":
            query = query.where(Expense.category == category)
        if month:
            first, following = month_bounds(month)
            query = query.where(Expense.spent_on >= first, Expense.spent_on < following)
        query = query.order_by(Expense.spent_on.desc(), Expense.created_at.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_expense(self, expense_id: str) -> Expense | None:
        result = await self.db.execute(select(Expense).where(Expense.id == expense_id))
        return result.scalar_one_or_none()

    async def _editable(self, principal: Principal, expense_id: str) -> Expense:
        expense = await self.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        if not principal.is_admin:
            if expense.requested_by != principal.email:
                raise PermissionError("Only the requester or an admin can change this expense")
            if expense.status != "PENDING":
                raise ConflictError(f"Expense is already {expense.status}")
        return expense

    async def update_expense(self, principal: Principal, expense_id: str, **kwargs: object) -> Expense:
        """Edit a request while it is still PENDING.

        Raises:
            NotFoundError: If the expense is not found.
            PermissionError: If the caller is neither the requester nor an ADMIN.
            ConflictError: If the expense has already been reviewed.
        """
        expense = await self._editable(principal, expense_id)
        if expense.status != "PENDING":
            raise ConflictError(f"Expense is already {expense.status}")
        if kwargs.get("category"):
            await self._check_category(str(kwargs["category"]))

        for field, value in kwargs.items():
            if value is not None:
                setattr(expense, field, value)

        await self.db.commit()
        await self.db.refresh(expense)
        return expense

    async def review(
        self, principal: Principal, expense_id: str, approve: bool, note: str = ""
    ) -> tuple[Expense, FinanceTransaction | None]:
        """Approve or reject a PENDING expense.

        Returns:
            The reviewed expense and, for an approval, the ledger entry.

        Raises:
            PermissionError: If the caller is not an ADMIN.
            NotFoundError: If the expense is not found.
            ConflictError: If the expense is not PENDING.
        """
        principal.require("expenses", "review")
        expense = await self.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        if expense.status != "PENDING":
            raise ConflictError(f"Expense is already {expense.status}")

        now = datetime.now(timezone.utc)
        expense.status = "APPROVED" if approve else "REJECTED"
        expense.reviewed_by = principal.email
        expense.reviewed_at = now
        expense.review_note = note

        tx = None
        if approve:
            tx = FinanceTransaction(
                reference=new_reference(),
                occurred_at=now,
                amount=expense.amount,
                type="EXPENSE",
                note=f"{expense.category}: {expense.content}",
            )
            self.db.add(tx)

        await self.db.commit()
        await self.db.refresh(expense)
        logger.info("Expense %s %s by %s", expense.id, expense.status, principal.email)
        return expense, tx

    async def delete_expense(self, principal: Principal, expense_id: str) -> None:
        """Delete an expense: ADMIN any time, the requester while PENDING."""
        expense = await self._editable(principal, expense_id)
        await self.db.delete(expense)
        await self.db.commit()

    async def summary(self, month: str) -> dict:
        """Totals by status and approved totals by category for ``month``."""
        first, following = month_bounds(month)
        result = await self.db.execute(
            select(Expense).where(Expense.spent_on >= first, Expense.spent_on < following)
        )
        by_status = {status: {"count": 0, "amount": 0} for status in EXPENSE_STATUSES}
        by_category: dict[str, int] = {}
        for expense in result.scalars().all():
            bucket = by_status.setdefault(expense.status, {"count": 0, "amount": 0})
            bucket["count"] += 1
            bucket["amount"] += expense.amount
            if expense.status == "APPROVED":
                by_category[expense.category] = by_category.get(expense.category, 0) + expense.amount
        return {
            "month": month,
            "by_status": by_status,
            "approved_by_category": by_category,
            "approved_total": by_status["APPROVED"]["amount"],
        }
