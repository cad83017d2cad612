import datetime as dt

from sqlalchemy import BigInteger, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin, money_column


class AdCampaign(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """One row of the ads spend sheet: a piece of ad content run for a course."""

    __tablename__ = "ad_campaigns"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    course: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    content_name: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    content_main: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    format: Mapped[str] = mapped_column(String(30), server_default="Video", default="Video", nullable=False)
    budget: Mapped[int] = money_column()
    spent: Mapped[int] = money_column()
    mess: Mapped[int] = mapped_column(BigInteger, server_default="0", default=0, nullable=False)
    orders_mong: Mapped[int] = mapped_column(BigInteger, server_default="0", default=0, nullable=False)
    orders_thanh: Mapped[int] = mapped_column(BigInteger, server_default="0", default=0, nullable=False)
    price_per_course: Mapped[int] = money_column(3_500_000)
    base_cost: Mapped[int] = money_column()
    evaluation: Mapped[str] = mapped_column(String(30), server_default="normal", default="normal", nullable=False)
    action: Mapped[str] = mapped_column(String(30), server_default="monitor", default="monitor", nullable=False)
    status: Mapped[str] = mapped_column(String(20), server_default="new", default="new", nullable=False)
    link: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
