"""Training endpoints: calendar events, class templates and the resource library.

Reads are open to everyone with ``training.view``; mutations need
``training.edit``. All changes are announced on the ``training`` feed.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require, service_errors
from bizops.calc import training as training_calc
from bizops.models.training import ResourceNode, TrainingEvent, TrainingTemplate
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.training import (
    ROOT_PATTERN,
    CreateBatchRequest,
    CreateEventRequest,
    CreateResourceRequest,
    TemplateRequest,
    UpdateEventRequest,
    UpdateResourceRequest,
    UpdateTemplateRequest,
)
from bizops.services.drive import DriveClient, DriveUploadError
from bizops.services.feed import FeedPublisher
from bizops.services.resource_service import ResourceService
from bizops.services.training_service import TrainingService

logger = logging.getLogger(__name__)

router = APIRouter()

view_training = require("training", "view")
edit_training = require("training", "edit")


def _event_to_attrs(event: TrainingEvent) -> dict:
    return {
        "kind": "event",
        "title": event.title,
        "date": event.date.isoformat(),
        "time": event.time,
        "trainer": event.trainer,
        "location": event.location,
        "color": event.color,
        "template_id": event.template_id,
        "batch_code": event.batch_code,
    }


def _template_to_attrs(template: TrainingTemplate) -> dict:
    return {
        "kind": "template",
        "title": template.title,
        "sessions": template.sessions,
        "time": template.time,
        "trainer": template.trainer,
        "location": template.location,
        "preferred_days": template.preferred_days or [],
        "color": template.color,
    }


def _node_to_attrs(node: ResourceNode) -> dict:
    return {
        "kind": "resource",
        "root": node.root,
        "parent_id": node.parent_id,
        "type": node.kind,
        "name": node.name,
        "link": node.link,
        "download_link": node.download_link,
        "file_type": node.file_type,
        "description": node.description,
        "content": node.content,
        "drive_id": node.drive_id,
        "updated_at": node.updated_at.isoformat(),
    }


def _event_resource(event: TrainingEvent) -> JSONAPIResource:
    return JSONAPIResource(type="events", id=str(event.id), attributes=_event_to_attrs(event))


def _template_resource(template: TrainingTemplate) -> JSONAPIResource:
    return JSONAPIResource(type="templates", id=str(template.id), attributes=_template_to_attrs(template))


def _node_resource(node: ResourceNode) -> JSONAPIResource:
    return JSONAPIResource(type="resources", id=str(node.id), attributes=_node_to_attrs(node))


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.get("/events")
async def list_events(
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    week_of: date | None = Query(default=None),
    principal: Principal = Depends(view_training),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Events of a month, or of the week containing ``week_of``."""
    events = await TrainingService(db).list_events(month, week_of)
    return JSONAPIListResponse(data=[_event_resource(e) for e in events], meta={"total": len(events)})


@router.post("/events", status_code=201)
async def create_event(
    body: JSONAPIRequest[CreateEventRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    event = await TrainingService(db).create_event(**body.data.attributes.model_dump())
    attrs = _event_to_attrs(event)
    await feed.publish("training", "created", str(event.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="events", id=str(event.id), attributes=attrs))


@router.patch("/events/{event_id}")
async def update_event(
    event_id: str,
    body: JSONAPIRequest[UpdateEventRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        event = await TrainingService(db).update_event(event_id, **update_data)
    attrs = _event_to_attrs(event)
    await feed.publish("training", "updated", str(event.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="events", id=str(event.id), attributes=attrs))


@router.delete("/events/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await TrainingService(db).delete_event(event_id)
    await feed.publish("training", "deleted", event_id)


@router.post("/batches", status_code=201)
async def create_batch(
    body: JSONAPIRequest[CreateBatchRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPIListResponse:
    """Schedule every session of a class from a template."""
    attrs = body.data.attributes
    with service_errors():
        events = await TrainingService(db).create_batch(
            attrs.template_id, attrs.start_date, attrs.batch_code, attrs.color, attrs.sessions
        )
    for event in events:
        await feed.publish("training", "created", str(event.id), _event_to_attrs(event))
    return JSONAPIListResponse(data=[_event_resource(e) for e in events], meta={"total": len(events)})


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@router.get("/templates")
async def list_templates(
    principal: Principal = Depends(view_training),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    templates = await TrainingService(db).list_templates()
    return JSONAPIListResponse(
        data=[_template_resource(t) for t in templates], meta={"total": len(templates)}
    )


@router.post("/templates", status_code=201)
async def create_template(
    body: JSONAPIRequest[TemplateRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    template = await TrainingService(db).create_template(**body.data.attributes.model_dump())
    attrs = _template_to_attrs(template)
    await feed.publish("training", "created", str(template.id), attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="templates", id=str(template.id), attributes=attrs)
    )


@router.patch("/templates/{template_id}")
async def update_template(
    template_id: str,
    body: JSONAPIRequest[UpdateTemplateRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        template = await TrainingService(db).update_template(template_id, **update_data)
    attrs = _template_to_attrs(template)
    await feed.publish("training", "updated", str(template.id), attrs)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="templates", id=str(template.id), attributes=attrs)
    )


@router.delete("/templates/{template_id}", status_code=204)
async def delete_template(
    template_id: str,
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await TrainingService(db).delete_template(template_id)
    await feed.publish("training", "deleted", template_id)


@router.get("/templates/{template_id}/schedule")
async def preview_schedule(
    template_id: str,
    start: date = Query(...),
    principal: Principal = Depends(view_training),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Preview the session dates a batch starting on ``start`` would get."""
    template = await TrainingService(db).get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    plan = training_calc.generate_schedule(
        template.sessions, start, template.preferred_days or [], template.time, template.trainer
    )
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="schedules",
            id=template_id,
            attributes={
                "sessions": [
                    {**item, "date": item["date"].isoformat()} for item in plan
                ]
            },
        )
    )


@router.get("/templates/{template_id}/classes")
async def template_classes(
    template_id: str,
    principal: Principal = Depends(view_training),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """The template's classes (one per batch), newest first."""
    with service_errors():
        classes = await TrainingService(db).template_classes(template_id)
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(
                type="classes",
                id=f"{template_id}:{group['batch_code']}:{group['start_date'].isoformat()}",
                attributes={
                    **group,
                    "start_date": group["start_date"].isoformat(),
                    "end_date": group["end_date"].isoformat(),
                    "sessions": [
                        {"id": str(e.id), **_event_to_attrs(e)} for e in group["sessions"]
                    ],
                },
            )
            for group in classes
        ],
        meta={"total": len(classes)},
    )


# ---------------------------------------------------------------------------
# Resource library
# ---------------------------------------------------------------------------


@router.get("/resources")
async def list_resources(
    root: str = Query(..., pattern=ROOT_PATTERN),
    parent_id: str | None = Query(default=None),
    q: str | None = Query(default=None),
    principal: Principal = Depends(view_training),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """A folder's children, or name matches across the library when ``q`` is set."""
    service = ResourceService(db)
    with service_errors():
        if q:
            nodes = await service.search(root, q)
        else:
            nodes = await service.list_children(root, parent_id)
    return JSONAPIListResponse(data=[_node_resource(n) for n in nodes], meta={"total": len(nodes)})


@router.post("/resources", status_code=201)
async def create_resource(
    body: JSONAPIRequest[CreateResourceRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    with service_errors():
        node = await ResourceService(db).create_node(**body.data.attributes.model_dump())
    attrs = _node_to_attrs(node)
    await feed.publish("training", "created", str(node.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="resources", id=str(node.id), attributes=attrs))


@router.post("/resources/upload", status_code=201)
async def upload_resource(
    file: UploadFile = File(...),
    root: str = Form(..., pattern=ROOT_PATTERN),
    parent_id: str | None = Form(default=None),
    description: str = Form(default=""),
    drive_token: str = Header(..., alias="X-Drive-Token"),
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Upload a file to Google Drive with the caller's OAuth token and link it."""
    content = await file.read()
    try:
        with service_errors():
            node = await ResourceService(db).upload_file(
                DriveClient(drive_token),
                root,
                file.filename or "untitled",
                content,
                file.content_type or "application/octet-stream",
                parent_id,
                description,
            )
    except DriveUploadError as exc:
        logger.warning("Drive upload failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    attrs = _node_to_attrs(node)
    await feed.publish("training", "created", str(node.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="resources", id=str(node.id), attributes=attrs))


@router.patch("/resources/{node_id}")
async def update_resource(
    node_id: str,
    body: JSONAPIRequest[UpdateResourceRequest],
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        node = await ResourceService(db).update_node(node_id, **update_data)
    attrs = _node_to_attrs(node)
    await feed.publish("training", "updated", str(node.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="resources", id=str(node.id), attributes=attrs))


@router.delete("/resources/{node_id}", status_code=204)
async def delete_resource(
    node_id: str,
    principal: Principal = Depends(edit_training),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    """Delete a node and everything beneath it."""
    with service_errors():
        deleted = await ResourceService(db).delete_node(node_id)
    for deleted_id in deleted:
        await feed.publish("training", "deleted", str(deleted_id))
