"""Inbound lead endpoints: public intake, the lead list and distribution.

``POST /leads/ingest`` is unauthenticated and takes a flat JSON body so
that web forms and landing pages can post to it directly.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require, service_errors
from bizops.calc import leads as leads_calc
from bizops.models.lead import Lead
from bizops.permissions import Principal
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.schemas.lead import DistributeLeadsRequest, IngestLeadRequest, UpdateLeadRequest
from bizops.schemas.settings import AutoAssignRequest
from bizops.services.activity_service import ActivityService
from bizops.services.feed import FeedPublisher
from bizops.services.lead_service import LeadService
from bizops.services.settings_service import SETTINGS_KEY, SettingsService
from bizops.services.user_service import UserService

router = APIRouter()

view_leads = require("leads", "view")
edit_leads = require("leads", "edit")
assign_leads = require("leads", "assign")
delete_leads = require("leads", "delete")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _lead_to_attrs(lead: Lead) -> dict:
    return {
        "name": lead.name,
        "phone": lead.phone,
        "course": lead.course,
        "status": lead.status,
        "sale_id": lead.sale_id,
        "sale_name": lead.sale_name,
        "source": lead.source,
        "note": lead.note,
        "received_at": _iso(lead.received_at),
        "created_at": _iso(lead.created_at),
        "updated_at": _iso(lead.updated_at),
    }


def _lead_resource(lead: Lead) -> JSONAPIResource:
    return JSONAPIResource(type="leads", id=str(lead.id), attributes=_lead_to_attrs(lead))


@router.post("/ingest", status_code=201)
async def ingest_lead(
    body: IngestLeadRequest,
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Accept a lead from a web form (``fullname``/``mobile`` are accepted aliases)."""
    lead = await LeadService(db).ingest(**body.model_dump())
    attrs = _lead_to_attrs(lead)
    await feed.publish("leads", "created", str(lead.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="leads", id=str(lead.id), attributes=attrs))


@router.get("")
async def list_leads(
    sale_id: str | None = Query(default=None),
    course: str | None = Query(default=None),
    q: str | None = Query(default=None),
    period: str = Query(default="all", pattern="^(all|today|week|month|year)$"),
    principal: Principal = Depends(view_leads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List visible leads newest first; ``meta.stats`` counts by status and course."""
    with service_errors():
        leads = await LeadService(db).list_leads(principal, sale_id, course, q, period)
    return JSONAPIListResponse(
        data=[_lead_resource(lead) for lead in leads],
        meta={"total": len(leads), "stats": leads_calc.stats(leads)},
    )


@router.get("/staff")
async def list_sales_staff(
    principal: Principal = Depends(assign_leads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """Active sellers in rotation order."""
    staff = await UserService(db).list_sales_team()
    return JSONAPIListResponse(
        data=[
            JSONAPIResource(
                type="sellers",
                id=str(u.id),
                attributes={"email": u.email, "name": u.name, "role": u.role},
            )
            for u in staff
        ],
        meta={"total": len(staff)},
    )


@router.post("/distribute")
async def distribute_leads(
    body: JSONAPIRequest[DistributeLeadsRequest],
    principal: Principal = Depends(assign_leads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Hand unassigned leads to active sellers in rotation."""
    course = body.data.attributes.course
    with service_errors():
        leads, counts = await LeadService(db).distribute(course)
    await ActivityService(db).record(
        principal.email, "leads_distributed", "leads", None,
        f"Distributed {len(leads)} leads", {"course": course, "by_seller": counts},
    )
    for lead in leads:
        await feed.publish("leads", "updated", str(lead.id), _lead_to_attrs(lead))
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="lead-distributions",
            id=course,
            attributes={"assigned": len(leads), "by_seller": counts},
        )
    )


@router.put("/auto-assign")
async def set_auto_assign(
    body: JSONAPIRequest[AutoAssignRequest],
    principal: Principal = Depends(assign_leads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    config = await SettingsService(db).set_auto_assign(body.data.attributes.enabled)
    await feed.publish("settings", "updated", SETTINGS_KEY, config)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="lead-settings", id=SETTINGS_KEY, attributes=config["leads"])
    )


@router.get("/{lead_id}")
async def get_lead(
    lead_id: str,
    principal: Principal = Depends(view_leads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    lead = await LeadService(db).get_lead(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return JSONAPISingleResponse(data=_lead_resource(lead))


@router.patch("/{lead_id}")
async def update_lead(
    lead_id: str,
    body: JSONAPIRequest[UpdateLeadRequest],
    principal: Principal = Depends(edit_leads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        lead = await LeadService(db).update_lead(principal, lead_id, **update_data)
    attrs = _lead_to_attrs(lead)
    await feed.publish("leads", "updated", str(lead.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="leads", id=str(lead.id), attributes=attrs))


@router.delete("/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: str,
    principal: Principal = Depends(delete_leads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await LeadService(db).delete_lead(lead_id)
    await feed.publish("leads", "deleted", lead_id)
