from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin


class SystemSettings(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """Singleton configuration document keyed by ``key`` (always "system")."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, default="system")
    config: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
