"""System settings service.

The configuration is a single JSON document (row key ``system``) holding
the option lists the dashboard screens offer (courses, ad formats,
expense categories, teams, ...) plus the lead auto-assign switch and its
round-robin cursor. The first read creates the document from defaults.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.errors import ConflictError, NotFoundError
from bizops.models.settings import SystemSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "system"

DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "global": {
        "courses": ["K35", "K36", "K37", "K38"],
        "months": ["2025-12", "2026-01", "2026-02"],
    },
    "ads": {
        "actions": ["Increase", "Hold", "Pause", "Wait", "Scale"],
        "evals": ["Good", "OK", "Loss", "Weak", "New"],
        "formats": ["Video", "Image", "Reels", "Album"],
    },
    "salary": {
        "roles": ["Sale", "Marketing", "Content", "Dev", "Admin", "Intern"],
        "base_salary_default": 5_000_000,
    },
    "spending": {
        "categories": [
            "Fixed costs",
            "Marketing & Ads",
            "Equipment",
            "Tools & Software",
            "Meals & Hospitality",
            "Bonuses & Benefits",
            "Other",
        ],
    },
    "tasks": {"teams": ["CHUNG"]},
    "leads": {"auto_assign": False, "next_index": 0},
}


def merge_defaults(config: dict[str, Any] | None) -> dict[str, Any]:
    """Overlay ``config`` onto a fresh copy of the defaults, section by section."""
    merged = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in (config or {}).items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(copy.deepcopy(values))
        else:
            merged[section] = copy.deepcopy(values)
    return merged


class SettingsService:
    """Service for reading and editing the configuration document.

    Args:
        db: Async SQLAlchemy session for database operations.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _row(self) -> SystemSettings:
        result = await self.db.execute(
            select(SystemSettings).where(SystemSettings.key == SETTINGS_KEY)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = SystemSettings(key=SETTINGS_KEY, config=merge_defaults(None))
            self.db.add(row)
            await self.db.flush()
            logger.info("Initialized system settings from defaults")
        return row

    async def get_config(self) -> dict[str, Any]:
        """Return the full configuration, creating it on first access."""
        row = await self._row()
        config = merge_defaults(row.config)
        await self.db.commit()
        return config

    async def replace(self, config: dict[str, Any]) -> dict[str, Any]:
        """Replace the whole document; absent sections fall back to defaults."""
        row = await self._row()
        current = merge_defaults(row.config)
        merged = merge_defaults(config)
        # The rotation cursor belongs to the distributor, not to the editor.
        merged["leads"]["next_index"] = current["leads"]["next_index"]
        row.config = merged
        await self.db.commit()
        return merged

    async def add_item(self, section: str, key: str, value: str) -> dict[str, Any]:
        """Append a value to a list setting.

        Raises:
            ValueError: If the value is blank or the setting is not a list.
            ConflictError: If the value is already present.
        """
        value = value.strip()
        if not value:
            raise ValueError("Value cannot be empty")
        row = await self._row()
        config = merge_defaults(row.config)
        items = config.setdefault(section, {}).setdefault(key, [])
        if not isinstance(items, list):
            raise ValueError(f"Setting {section}.{key} is not a list")
        if value in items:
            raise ConflictError(f"'{value}' already exists in {section}.{key}")
        items.append(value)
        row.config = config
        await self.db.commit()
        logger.info("Added '%s' to %s.%s", value, section, key)
        return config

    async def remove_item(self, section: str, key: str, value: str) -> dict[str, Any]:
        """Remove a value from a list setting.

        Raises:
            NotFoundError: If the value is not in the list.
        """
        row = await self._row()
        config = merge_defaults(row.config)
        items = config.get(section, {}).get(key)
        if not isinstance(items, list) or value not in items:
            raise NotFoundError(f"'{value}' not found in {section}.{key}")
        config[section][key] = [item for item in items if item != value]
        row.config = config
        await self.db.commit()
        return config

    async def set_auto_assign(self, enabled: bool) -> dict[str, Any]:
        row = await self._row()
        config = merge_defaults(row.config)
        config["leads"]["auto_assign"] = enabled
        row.config = config
        await self.db.commit()
        logger.info("Lead auto-assign %s", "enabled" if enabled else "disabled")
        return config

    async def courses(self) -> list[str]:
        config = await self.get_config()
        return list(config["global"]["courses"])

    async def lead_rotation(self) -> tuple[bool, int]:
        """Return ``(auto_assign, next_index)`` without committing."""
        row = await self._row()
        leads = merge_defaults(row.config)["leads"]
        return bool(leads["auto_assign"]), int(leads["next_index"])

    async def set_lead_cursor(self, next_index: int) -> None:
        """Stage the rotation cursor; the caller commits with its own changes."""
        row = await self._row()
        config = merge_defaults(row.config)
        config["leads"]["next_index"] = next_index
        row.config = config

    async def overwrite(self, config: dict[str, Any]) -> None:
        """Stage a full overwrite, rotation cursor included; the caller commits."""
        row = await self._row()
        row.config = merge_defaults(config)
