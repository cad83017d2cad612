from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

LEAD_STATUSES = ("NEW", "CALLING", "CLOSED")


class Lead(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """An inbound prospect waiting to be called by a seller."""

    __tablename__ = "leads"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    course: Mapped[str] = mapped_column(String(50), server_default="Other", default="Other", nullable=False)
    status: Mapped[str] = mapped_column(String(20), server_default="NEW", default="NEW", nullable=False)
    sale_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    sale_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
