"""Declarative base and shared column helpers for bizops models.

Ids are string UUIDs so they travel unchanged through JSON:API payloads,
feed events and backup snapshots (restore re-inserts rows with their ids).
Monetary columns hold whole VND as ``BigInteger``.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import BigInteger, DateTime, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, MappedColumn, mapped_column


def new_id() -> str:
    return str(uuid4())


def money_column(default: int | None = 0) -> MappedColumn:
    """A whole-VND amount column. ``default=None`` makes it required."""
    if default is None:
        return mapped_column(BigInteger, nullable=False)
    return mapped_column(BigInteger, server_default=str(default), default=default, nullable=False)


class Base(DeclarativeBase):
    pass


class UUIDPrimaryKeyMixin:
    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=new_id)


class AuditMixin:
    """``created_at``/``updated_at`` set by the database (UTC)."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
