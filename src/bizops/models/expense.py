from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin, money_column

EXPENSE_STATUSES = ("PENDING", "APPROVED", "REJECTED")


class Expense(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A spending request that an admin approves or rejects."""

    __tablename__ = "expenses"

    spent_on: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[int] = money_column(None)
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    requester_name: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    status: Mapped[str] = mapped_column(String(20), server_default="PENDING", default="PENDING", nullable=False)
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    review_note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
