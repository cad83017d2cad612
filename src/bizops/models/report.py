from datetime import date

from sqlalchemy import JSON, BigInteger, Date, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class WorkReport(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A staff member's end-of-day report: what got done and what is planned."""

    __tablename__ = "work_reports"
    __table_args__ = (
        UniqueConstraint("user_email", "report_date", name="uq_work_report_user_date"),
    )

    user_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    report_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    done_tasks: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    plan_tasks: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    issues: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    actual_duration: Mapped[str] = mapped_column(String(50), server_default="", default="", nullable=False)


class TeamSummary(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A team leader's wrap-up for one team on one day."""

    __tablename__ = "team_summaries"
    __table_args__ = (
        UniqueConstraint("report_date", "team", name="uq_team_summary_date_team"),
    )

    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    team: Mapped[str] = mapped_column(String(50), nullable=False)
    result: Mapped[str] = mapped_column(Text, nullable=False)
    issues: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    reporter: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)


class SmartGoal(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A measurable monthly target tracked against its current value."""

    __tablename__ = "smart_goals"

    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    target: Mapped[int] = mapped_column(BigInteger, nullable=False)
    current: Mapped[int] = mapped_column(BigInteger, server_default="0", default=0, nullable=False)
    unit: Mapped[str] = mapped_column(String(30), server_default="", default="", nullable=False)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
