from sqlalchemy import JSON, Boolean, String, true
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

ROLES = ("ADMIN", "SALE_LEADER", "LEADER", "SALE", "STAFF")
DEFAULT_TEAM = "CHUNG"


class User(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A staff member on the access allow-list with role and per-module permissions."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    role: Mapped[str] = mapped_column(String(20), server_default="STAFF", default="STAFF", nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, server_default=true(), default=True, nullable=False
    )
    team: Mapped[str] = mapped_column(
        String(50), server_default=DEFAULT_TEAM, default=DEFAULT_TEAM, nullable=False
    )
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    permissions: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
