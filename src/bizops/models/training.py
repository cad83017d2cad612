import datetime as dt

from sqlalchemy import JSON, Date, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

RESOURCE_ROOTS = ("docs", "tools")
RESOURCE_KINDS = ("FOLDER", "DOC", "FILE")


class TrainingTemplate(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A reusable class blueprint used to generate multi-session schedules."""

    __tablename__ = "training_templates"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    sessions: Mapped[int] = mapped_column(Integer, server_default="1", default=1, nullable=False)
    time: Mapped[str] = mapped_column(String(5), server_default="20:00", default="20:00", nullable=False)
    trainer: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    location: Mapped[str] = mapped_column(String(200), server_default="Zoom", default="Zoom", nullable=False)
    preferred_days: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    color: Mapped[str] = mapped_column(String(20), server_default="blue", default="blue", nullable=False)


class TrainingEvent(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A single calendar session."""

    __tablename__ = "training_events"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(5), server_default="20:00", default="20:00", nullable=False)
    trainer: Mapped[str] = mapped_column(String(100), server_default="", default="", nullable=False)
    location: Mapped[str] = mapped_column(String(200), server_default="Zoom", default="Zoom", nullable=False)
    color: Mapped[str] = mapped_column(String(20), server_default="blue", default="blue", nullable=False)
    template_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("training_templates.id", ondelete="SET NULL"), nullable=True
    )
    batch_code: Mapped[str] = mapped_column(String(50), server_default="", default="", nullable=False)


class ResourceNode(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A folder, online document or file link in the training library tree."""

    __tablename__ = "resource_nodes"

    root: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    parent_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("resource_nodes.id", ondelete="CASCADE"), nullable=True, index=True
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    link: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    download_link: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    file_type: Mapped[str] = mapped_column(String(20), server_default="", default="", nullable=False)
    description: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    content: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    drive_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
