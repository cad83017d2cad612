"""Financial dashboard endpoint."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bizops.api.deps import get_db, require
from bizops.calc.dashboard import month_of
from bizops.permissions import Principal
from bizops.schemas.common import MONTH_PATTERN
from bizops.schemas.jsonapi import JSONAPIResource, JSONAPISingleResponse
from bizops.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/summary")
async def dashboard_summary(
    month: str | None = Query(default=None, pattern=MONTH_PATTERN),
    principal: Principal = Depends(require("dashboard", "view")),
    db: AsyncSession = Depends(get_db),
) -> JSONAPISingleResponse:
    """Ads, sales, spending and payroll for a month (default: the current one).

    ``net`` is cash collected minus ads spend, approved expenses and
    payroll payout.
    """
    month = month or month_of(datetime.now(timezone.utc))
    summary = await DashboardService(db).summary(month)
    return JSONAPISingleResponse(
        data=JSONAPIResource(type="dashboard-summaries", id=month, attributes=summary)
    )
