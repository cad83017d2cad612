"""Ads spend sheet endpoints.

Each row carries its computed metrics (revenue, profit, ROAS, close rate,
price per message); list responses add the sheet summary in ``meta``.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, get_feed, require, service_errors
from bizops.calc import ads as ads_calc
from bizops.models.ads import AdCampaign
from bizops.permissions import Principal
from bizops.schemas.ads import AddCourseRequest, CreateAdRequest, UpdateAdRequest
from bizops.schemas.jsonapi import (
    JSONAPIListResponse,
    JSONAPIRequest,
    JSONAPIResource,
    JSONAPISingleResponse,
)
from bizops.services.ads_service import AdsService
from bizops.services.feed import FeedPublisher
from bizops.services.settings_service import SettingsService

router = APIRouter()

view_ads = require("ads", "view")
edit_ads = require("ads", "edit")


def _ad_to_attrs(ad: AdCampaign) -> dict:
    """Map an AdCampaign to JSON:API attributes, including computed metrics."""
    return {
        "date": ad.date.isoformat(),
        "course": ad.course,
        "content_name": ad.content_name,
        "content_main": ad.content_main,
        "format": ad.format,
        "budget": ad.budget,
        "spent": ad.spent,
        "mess": ad.mess,
        "orders_mong": ad.orders_mong,
        "orders_thanh": ad.orders_thanh,
        "price_per_course": ad.price_per_course,
        "base_cost": ad.base_cost,
        "evaluation": ad.evaluation,
        "action": ad.action,
        "status": ad.status,
        "link": ad.link,
        "metrics": ads_calc.calculate_row(ad),
        "created_at": ad.created_at.isoformat(),
        "updated_at": ad.updated_at.isoformat(),
    }


def _ad_resource(ad: AdCampaign) -> JSONAPIResource:
    return JSONAPIResource(type="ads", id=str(ad.id), attributes=_ad_to_attrs(ad))


@router.get("")
async def list_ads(
    course: str = Query(default="ALL"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    principal: Principal = Depends(view_ads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPIListResponse:
    """List the sheet, newest date first, with the summary for the same filter."""
    ads = await AdsService(db).list_ads(course, date_from, date_to)
    return JSONAPIListResponse(
        data=[_ad_resource(ad) for ad in ads],
        meta={"total": len(ads), "summary": ads_calc.summarize(ads)},
    )


@router.get("/summary")
async def ads_summary(
    course: str = Query(default="ALL"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    principal: Principal = Depends(view_ads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    summary = await AdsService(db).summary(course, date_from, date_to)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="ads-summary", id=course, attributes=summary)
    )


@router.get("/courses")
async def list_courses(
    principal: Principal = Depends(view_ads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    courses = await SettingsService(db).courses()
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="courses", id="global", attributes={"courses": courses})
    )


@router.post("/courses", status_code=201)
async def add_course(
    body: JSONAPIRequest[AddCourseRequest],
    principal: Principal = Depends(edit_ads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Add a course to the global course list."""
    with service_errors():
        config = await SettingsService(db).add_item("global", "courses", body.data.attributes.name)
    await feed.publish("settings", "updated", "system", config)
    return JSONAPISingleResponse(
        data=JSONAPIResource(
            type="courses", id="global", attributes={"courses": config["global"]["courses"]}
        )
    )


@router.post("", status_code=201)
async def create_ad(
    body: JSONAPIRequest[CreateAdRequest],
    principal: Principal = Depends(edit_ads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Add a row; course defaults to the newest configured course, date to today."""
    ad = await AdsService(db).create_ad(**body.data.attributes.model_dump())
    attrs = _ad_to_attrs(ad)
    await feed.publish("ads", "created", str(ad.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="ads", id=str(ad.id), attributes=attrs))


@router.get("/{ad_id}")
async def get_ad(
    ad_id: str,
    principal: Principal = Depends(view_ads),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    ad = await AdsService(db).get_ad(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return JSONAPISingleResponse(data=_ad_resource(ad))


@router.patch("/{ad_id}")
async def update_ad(
    ad_id: str,
    body: JSONAPIRequest[UpdateAdRequest],
    principal: Principal = Depends(edit_ads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> JSONAPISingleResponse:
    """Update one or more cells of a row."""
    update_data = body.data.attributes.model_dump(exclude_unset=True)
    with service_errors():
        ad = await AdsService(db).update_ad(ad_id, **update_data)
    attrs = _ad_to_attrs(ad)
    await feed.publish("ads", "updated", str(ad.id), attrs)
    return JSONAPISingleResponse(data=JSONAPIResource(type="ads", id=str(ad.id), attributes=attrs))


@router.delete("/{ad_id}", status_code=204)
async def delete_ad(
    ad_id: str,
    principal: Principal = Depends(edit_ads),
    db: AsyncSession = Depends(get_db),
    feed: FeedPublisher = Depends(get_feed),
) -> None:
    with service_errors():
        await AdsService(db).delete_ad(ad_id)
    await feed.publish("ads", "deleted", ad_id)
