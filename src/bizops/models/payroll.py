from sqlalchemy import Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin, money_column


class PayrollEntry(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A staff member's salary line for one month."""

    __tablename__ = "payroll_entries"
    __table_args__ = (
        UniqueConstraint("month", "staff_email", name="uq_payroll_month_staff"),
    )

    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    staff_name: Mapped[str] = mapped_column(String(100), nullable=False)
    staff_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), server_default="Sale", default="Sale", nullable=False)
    base_salary: Mapped[int] = money_column()
    sales_amount: Mapped[int] = money_column()
    orders: Mapped[int] = mapped_column(Integer, server_default="0", default=0, nullable=False)
    commission_rate: Mapped[float] = mapped_column(Float, server_default="0.03", default=0.03, nullable=False)
    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
