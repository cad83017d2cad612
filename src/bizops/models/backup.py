from sqlalchemy import JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class Backup(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A full snapshot of the business collections, restorable on demand."""

    __tablename__ = "backups"

    note: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    counts: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
