"""Training resource library: a folder tree of docs, file links and uploads.

Two independent trees exist, rooted at ``docs`` and ``tools``. Deleting a
folder deletes everything beneath it.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.errors import NotFoundError
from bizops.models.training import RESOURCE_ROOTS, ResourceNode
from bizops.services.drive import DriveClient

logger = logging.getLogger(__name__)


class ResourceService:
    """Service for browsing and editing the resource tree.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_node(self, node_id: str) -> ResourceNode | None:
        result = await self.db.execute(select(ResourceNode).where(ResourceNode.id == node_id))
        return result.scalar_one_or_none()

    async def list_children(self, root: str, parent_id: str | None = None) -> list[ResourceNode]:
        """List a folder's children (top level when ``parent_id`` is None), folders first."""
        if root not in RESOURCE_ROOTS:
            raise ValueError(f"Unknown resource root: {root}")
        query = select(ResourceNode).where(ResourceNode.root == root)
        if parent_id:
            query = query.where(ResourceNode.parent_id == parent_id)
        else:
            query = query.where(ResourceNode.parent_id.is_(None))
        result = await self.db.execute(query)
        nodes = list(result.scalars().all())
        nodes.sort(key=lambda node: (node.kind != "FOLDER", node.name.lower()))
        return nodes

    async def search(self, root: str, term: str) -> list[ResourceNode]:
        if root not in RESOURCE_ROOTS:
            raise ValueError(f"Unknown resource root: {root}")
        result = await self.db.execute(
            select(ResourceNode)
            .where(
                ResourceNode.root == root,
                func.lower(ResourceNode.name).contains(term.strip().lower(), autoescape=True),
            )
            .order_by(ResourceNode.name.asc())
        )
        return list(result.scalars().all())

    async def _check_parent(self, root: str, parent_id: str | None) -> None:
        if not parent_id:
            return
        parent = await self.get_node(parent_id)
        if parent is None:
            raise NotFoundError(f"Folder not found: {parent_id}")
        if parent.kind != "FOLDER" or parent.root != root:
            raise ValueError("Parent must be a folder in the same library")

    async def create_node(
        self,
        root: str,
        kind: str,
        name: str,
        parent_id: str | None = None,
        link: str = "",
        file_type: str = "",
        description: str = "",
        content: str = "",
    ) -> ResourceNode:
        """Create a folder, document or file link.

        Raises:
            NotFoundError: If the parent folder does not exist.
            ValueError: If the parent is not a folder of the same root.
        """
        await self._check_parent(root, parent_id)
        if kind == "FILE" and not file_type:
            file_type = "LINK"
        node = ResourceNode(
            root=root,
            parent_id=parent_id or None,
            kind=kind,
            name=name,
            link=link,
            file_type=file_type,
            description=description,
            content=content,
        )
        self.db.add(node)
        await self.db.commit()
        await self.db.refresh(node)
        return node

    async def upload_file(
        self,
        drive: DriveClient,
        root: str,
        name: str,
        content: bytes,
        mime_type: str,
        parent_id: str | None = None,
        description: str = "",
    ) -> ResourceNode:
        """Upload a file to Drive and store it as a FILE node."""
        await self._check_parent(root, parent_id)
        uploaded = await drive.upload(name, content, mime_type)
        node = ResourceNode(
            root=root,
            parent_id=parent_id or None,
            kind="FILE",
            name=uploaded.name,
            link=uploaded.link,
            download_link=uploaded.download_link,
            file_type="DRIVE_FILE",
            description=description,
            drive_id=uploaded.drive_id,
        )
        self.db.add(node)
        await self.db.commit()
        await self.db.refresh(node)
        return node

    async def update_node(self, node_id: str, **kwargs: object) -> ResourceNode:
        node = await self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Resource not found: {node_id}")
        for field, value in kwargs.items():
            if value is not None:
                setattr(node, field, value)
        await self.db.commit()
        await self.db.refresh(node)
        return node

    async def delete_node(self, node_id: str) -> list[str]:
        """Delete a node and all of its descendants.

        Returns:
            Ids of every deleted node.
        """
        node = await self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Resource not found: {node_id}")

        doomed = [node.id]
        frontier = [node.id]
        while frontier:
            result = await self.db.execute(
                select(ResourceNode.id).where(ResourceNode.parent_id.in_(frontier))
            )
            frontier = list(result.scalars().all())
            doomed.extend(frontier)

        await self.db.execute(delete(ResourceNode).where(ResourceNode.id.in_(doomed)))
        await self.db.commit()
        logger.info("Deleted resource %s and %d descendants", node_id, len(doomed) - 1)
        return doomed
