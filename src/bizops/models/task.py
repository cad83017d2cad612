from datetime import date

from sqlalchemy import JSON, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bizops.models.base import AuditMixin, Base, UUIDPrimaryKeyMixin

TASK_STATUSES = ("TODO", "DOING", "DONE")
TASK_PRIORITIES = ("LOW", "NORMAL", "HIGH", "URGENT")


class WorkTask(Base, UUIDPrimaryKeyMixin, AuditMixin):
    """A unit of work on the team kanban board."""

    __tablename__ = "work_tasks"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, server_default="", default="", nullable=False)
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    department: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    duration: Mapped[str] = mapped_column(String(50), server_default="", default="", nullable=False)
    priority: Mapped[str] = mapped_column(String(10), server_default="NORMAL", default="NORMAL", nullable=False)
    status: Mapped[str] = mapped_column(String(10), server_default="TODO", default="TODO", nullable=False)
    checklist: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    attachments: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    creator: Mapped[str] = mapped_column(String(255), nullable=False)
