"""Work task board service.

Leaders (and anyone granted ``tasks.view_all``) see every task; everyone
else sees tasks assigned to them or to their team.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.calc import tasks as tasks_calc
from bizops.errors import NotFoundError
from bizops.models.task import WorkTask
from bizops.permissions import Principal

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = frozenset({"assignee", "deadline"})


class TaskService:
    """Service for task CRUD with per-user visibility.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_task(self, principal: Principal, **fields: object) -> WorkTask:
        """Create a task; the department defaults to the creator's team.

        Raises:
            PermissionError: Without ``tasks.manage`` (ADMIN and LEADER by default).
        """
        principal.require("tasks", "manage")
        if not fields.get("department"):
            fields["department"] = principal.team
        task = WorkTask(creator=principal.email, **fields)
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("Task %s created by %s", task.id, principal.email)
        return task

    async def list_tasks(
        self,
        principal: Principal,
        status: str | None = None,
        assignee: str | None = None,
        department: str | None = None,
    ) -> list[WorkTask]:
        query = select(WorkTask)
        if not principal.can("tasks", "view_all"):
            query = query.where(
                or_(WorkTask.assignee == principal.email, WorkTask.department == principal.team)
            )
        if status and status != "ALL":
            query = query.where(WorkTask.status == status)
        if assignee:
            query = query.where(WorkTask.assignee == assignee)
        if department and department != "ALL":
            query = query.where(WorkTask.department == department)
        query = query.order_by(WorkTask.created_at.desc(), WorkTask.id.desc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_task(self, task_id: str) -> WorkTask | None:
        result = await self.db.execute(select(WorkTask).where(WorkTask.id == task_id))
        return result.scalar_one_or_none()

    async def get_visible_task(self, principal: Principal, task_id: str) -> WorkTask:
        """Load a task the principal may see. Hidden tasks read as missing."""
        task = await self.get_task(task_id)
        if task is None or not tasks_calc.is_visible(
            task, principal.email, principal.team, principal.can("tasks", "view_all")
        ):
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    async def update_task(self, principal: Principal, task_id: str, **kwargs: object) -> WorkTask:
        """Partial update of a visible task. Status transitions are unrestricted.

        Raises:
            NotFoundError: If the task is missing or not visible to the principal.
        """
        task = await self.get_visible_task(principal, task_id)

        for field, value in kwargs.items():
            if value is not None or field in NULLABLE_FIELDS:
                setattr(task, field, value)

        await self.db.commit()
        await self.db.refresh(task)
        return task

    async def delete_task(self, principal: Principal, task_id: str) -> None:
        """Delete a task: its creator, an ADMIN or a LEADER.

        Raises:
            NotFoundError: If the task is not found.
            PermissionError: For anyone else.
        """
        task = await self.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        if task.creator != principal.email and principal.role not in ("ADMIN", "LEADER"):
            raise PermissionError("Only the creator or a leader can delete this task")
        await self.db.delete(task)
        await self.db.commit()
