"""Backups, restore and per-collection data reset.

A backup is one JSON document holding every row of the business
collections plus the settings document. Restore replaces each collection
wholesale, keeping the original row ids.
"""

from __future__ import annotations

import copy
import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from bizops.errors import NotFoundError
from bizops.models.ads import AdCampaign
from bizops.models.backup import Backup
from bizops.models.customer import Customer, FinanceTransaction
from bizops.models.expense import Expense
from bizops.models.lead import Lead
from bizops.models.payroll import PayrollEntry
from bizops.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

# Insert order; deletes run in reverse so ledger rows go before customers.
COLLECTIONS: dict[str, type] = {
    "ads": AdCampaign,
    "customers": Customer,
    "transactions": FinanceTransaction,
    "expenses": Expense,
    "payroll": PayrollEntry,
    "leads": Lead,
}
RESETTABLE = frozenset(COLLECTIONS)
MANUAL_NOTE = "Manual backup"
SCHEDULED_NOTE = "Scheduled backup"


def serialize_row(row: Any) -> dict[str, Any]:
    """Column values of an ORM row as JSON-safe data."""
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        data[column.key] = value
    return data


def deserialize_row(model: type, data: dict[str, Any]) -> Any:
    """Rebuild an ORM row from :func:`serialize_row` output, ignoring unknown keys."""
    values = {}
    for column in model.__table__.columns:
        if column.key not in data:
            continue
        value = data[column.key]
        if value is not None and isinstance(value, str):
            if isinstance(column.type, DateTime):
                value = datetime.fromisoformat(value)
            elif isinstance(column.type, Date):
                value = date.fromisoformat(value)
        values[column.key] = value
    return model(**values)


def build_payload(rows_by_collection: dict[str, list], config: dict) -> tuple[dict, dict]:
    """Assemble a backup payload and its per-collection counts."""
    payload: dict[str, Any] = {
        name: [serialize_row(row) for row in rows] for name, rows in rows_by_collection.items()
    }
    payload["settings"] = copy.deepcopy(config)
    counts = {name: len(rows) for name, rows in rows_by_collection.items()}
    return payload, counts


class BackupService:
    """Service for snapshots, restores and collection resets.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_backup(self, note: str | None = None) -> Backup:
        rows_by_collection = {}
        for name, model in COLLECTIONS.items():
            result = await self.db.execute(select(model))
            rows_by_collection[name] = list(result.scalars().all())
        config = await SettingsService(self.db).get_config()
        payload, counts = build_payload(rows_by_collection, config)

        backup = Backup(note=note or MANUAL_NOTE, counts=counts, payload=payload)
        self.db.add(backup)
        await self.db.commit()
        await self.db.refresh(backup)
        logger.info("Created backup %s (%s)", backup.id, counts)
        return backup

    async def list_backups(self, limit: int = 50) -> list[Backup]:
        """List backups newest first, without loading their payloads."""
        result = await self.db.execute(
            select(Backup)
            .options(defer(Backup.payload))
            .order_by(Backup.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_backup(self, backup_id: str) -> None:
        backup = await self.db.get(Backup, backup_id)
        if backup is None:
            raise NotFoundError(f"Backup not found: {backup_id}")
        await self.db.delete(backup)
        await self.db.commit()

    async def restore_backup(self, backup_id: str, confirm: str) -> list[str]:
        """Replace every collection in the backup with its snapshot.

        Args:
            backup_id: Id of the backup to restore.
            confirm: Must equal ``backup_id``.

        Returns:
            Names of the restored collections (``settings`` included when present).

        Raises:
            ValueError: If the confirmation does not match.
            NotFoundError: If the backup does not exist.
        """
        if confirm != backup_id:
            raise ValueError("Confirmation does not match the backup id")
        backup = await self.db.get(Backup, backup_id)
        if backup is None:
            raise NotFoundError(f"Backup not found: {backup_id}")
        payload = backup.payload or {}

        present = [name for name in COLLECTIONS if name in payload]
        for name in reversed(present):
            await self.db.execute(delete(COLLECTIONS[name]))
        for name in present:
            model = COLLECTIONS[name]
            self.db.add_all(deserialize_row(model, row) for row in payload[name])
            await self.db.flush()

        restored = list(present)
        if "settings" in payload:
            await SettingsService(self.db).overwrite(payload["settings"])
            restored.append("settings")

        await self.db.commit()
        logger.info("Restored backup %s: %s", backup_id, ", ".join(restored))
        return restored

    async def reset(self, resource: str, confirm: str) -> int:
        """Delete every row of one collection.

        Returns:
            The number of deleted rows.

        Raises:
            ValueError: For an unknown collection or a mismatched confirmation.
        """
        if resource not in RESETTABLE:
            raise ValueError(f"Unknown collection: {resource}")
        if confirm != resource:
            raise ValueError("Confirmation does not match the collection name")
        result = await self.db.execute(delete(COLLECTIONS[resource]))
        await self.db.commit()
        logger.warning("Reset collection %s (%d rows)", resource, result.rowcount)
        return result.rowcount
