from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin, money_column

CUSTOMER_STATUSES = ("NEW", "DEPOSIT", "PAID", "RESERVED", "CANCEL")


class Customer(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A customer order in the sales pipeline with payment progress."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    course: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    full_price: Mapped[int] = money_column(5_000_000)
    paid_amount: Mapped[int] = money_column()
    debt_amount: Mapped[int] = money_column()
    status: Mapped[str] = mapped_column(String(20), server_default="NEW", default="NEW", nullable=False, index=True)
    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    source_ad_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)
    source_ad_name: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    sale_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sale_name: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)


class FinanceTransaction(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A money movement in the finance ledger (customer payment or approved expense)."""

    __tablename__ = "finance_transactions"

    reference: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    amount: Mapped[int] = money_column(None)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    customer_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    customer_name: Mapped[str] = mapped_column(String(200), server_default="", default="", nullable=False)
    course: Mapped[str] = mapped_column(String(50), server_default="", default="", nullable=False)
