from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class ActivityLog(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Audit trail entry for privileged or destructive operations.

    Records who did what to which resource, with a human-readable
    summary and optional structured details.
    """

    __tablename__ = "activity_logs"

    actor: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    summary: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
