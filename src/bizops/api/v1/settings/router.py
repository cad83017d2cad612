"""System settings, backups, data reset and audit log endpoints.

Reading the configuration is open to every signed-in user (the screens
need the option lists); everything else here is ADMIN only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_current_principal, get_db, get_feed, require, service_errors
from bizops.models.activity import ActivityLog
from bizops.models.backup import Backup
from bizops.permissions import Principal
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.pagination import page_links
from bizops.schemas.settings import (
    AutoAssignRequest,
    ConfirmRequest,
    CreateBackupRequest,
    ListItemRequest,
    ReplaceSettingsRequest,
)
from bizops.services.activity_service import ActivityService
from bizops.services.backup_service import BackupService
from bizops.services.feed import FeedPublisher
from bizops.services.settings_service import SETTINGS_KEY, SettingsService

router = APIRouter()

manage_settings = require("settings", "manage")


def _settings_resource(config: dict) -> JSONAPIResource:
    return JSONAPIResource(type="settings", id=SETTINGS_KEY, attributes=config)


def _backup_to_attrs(backup: Backup) -> dict:
    return {
        "note": backup.note,
        "counts": backup.counts or {},
        "created_at": backup.created_at.isoformat(),
    }


def _activity_to_attrs(entry: ActivityLog) -> dict:
    return {
        "actor": entry.actor,
        "action": entry.action,
        "resource": entry.resource,
        "resource_id": entry.resource_id,
        "summary": entry.summary,
        "details": entry.details,
        "created_at": entry.created_at.isoformat(),
    }


async def _settings_changed(feed: FeedPublisher, config: dict) -> JSONAPISingleResponse:
    await feed.publish("settings", "updated", SETTINGS_KEY, config)
    return JSONAPISingleResponse(data=_settings_resource(config))


# ---------------------------------------------------------------------------
# Settings document
# ---------------------------------------------------------------------------


@router.get("")
async def get_settings_document(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    config = await SettingsService(db).get_config()
    return JSONAPISingleResponse(data=_settings_resource(config))


@router.put("")
async def replace_settings(
    body: JSONAPIRequest[ReplaceSettingsRequest],
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Replace the whole document; missing sections are filled from defaults."""
    config = await SettingsService(db).replace(body.data.attributes.config)
    await ActivityService(db).record(
        principal.email, "settings_replaced", "settings", SETTINGS_KEY, "Replaced system settings"
    )
    return await _settings_changed(feed, config)


@router.post("/items", status_code=201)
async def add_item(
    body: JSONAPIRequest[ListItemRequest],
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Append a value to a list setting (e.g. a new course or category)."""
    attrs = body.data.attributes
    with service_errors():
        config = await SettingsService(db).add_item(attrs.section, attrs.key, attrs.value)
    return await _settings_changed(feed, config)


@router.delete("/items")
async def remove_item(
    section: str = Query(...),
    key: str = Query(...),
    value: str = Query(...),
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    with service_errors():
        config = await SettingsService(db).remove_item(section, key, value)
    return await _settings_changed(feed, config)


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


@router.get("/backups")
async def list_backups(
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List backups newest first (metadata and counts only)."""
    backups = await BackupService(db).list_backups()
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(type="backups", id=str(b.id), attributes=_backup_to_attrs(b))
            for b in backups
        ],
        meta={"total": len(backups)},
    )


@router.post("/backups", status_code=201)
async def create_backup(
    body: JSONAPIRequest[CreateBackupRequest],
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    backup = await BackupService(db).create_backup(body.data.attributes.note)
    await ActivityService(db).record(
        principal.email, "backup_created", "backups", str(backup.id), backup.note, backup.counts
    )
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="backups", id=str(backup.id), attributes=_backup_to_attrs(backup))
    )


@router.post("/backups/{backup_id}/restore")
async def restore_backup(
    backup_id: str,
    body: JSONAPIRequest[ConfirmRequest],
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Restore a backup. ``confirm`` must repeat the backup id."""
    with service_errors():
        restored = await BackupService(db).restore_backup(backup_id, body.data.attributes.confirm)
    await ActivityService(db).record(
        principal.email, "backup_restored", "backups", backup_id,
        f"Restored backup {backup_id}", {"collections": restored},
    )
    for resource in restored:
        await feed.publish(resource, "reset")
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="restores", id=backup_id, attributes={"restored": restored}
        )
    )


@router.delete("/backups/{backup_id}", status_code=204)
async def delete_backup(
    backup_id: str,
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> None:
    with service_errors():
        await BackupService(db).delete_backup(backup_id)


# ---------------------------------------------------------------------------
# Data reset and audit
# ---------------------------------------------------------------------------


@router.post("/reset/{resource}")
async def reset_collection(
    resource: str,
    body: JSONAPIRequest[ConfirmRequest],
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Wipe one collection. ``confirm`` must repeat the collection name."""
    with service_errors():
        deleted = await BackupService(db).reset(resource, body.data.attributes.confirm)
    await ActivityService(db).record(
        principal.email, "data_reset", resource, None, f"Deleted {deleted} {resource} rows"
    )
    await feed.publish(resource, "reset")
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="resets", id=resource, attributes={"deleted": deleted})
    )


@router.get("/audit")
async def list_audit(
    request: Request,
    resource: str | None = Query(default=None),
    actor: str | None = Query(default=None),
    page_after: str | None = Query(default=None, alias="page[after]"),
    page_size: int = Query(default=100, ge=1, le=500, alias="page[size]"),
    principal: Principal = Depends(manage_settings),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Audit entries, newest first."""
    with service_errors():
        entries, meta = await ActivityService(db).list_activities(
            page_size=page_size, after=page_after, resource=resource, actor=actor
        )
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(type="activities", id=str(e.id), attributes=_activity_to_attrs(e))
            for e in entries
        ],
        meta=meta.model_dump(),
        links=page_links(str(request.url), entries, meta, page_size),
    )
