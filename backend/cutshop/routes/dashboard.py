"""
Dashboard statistics endpoint.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ..auth.dependencies import require_user
from ..auth.models import User
from .common import dump

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def dashboard_stats(
    request: Request,
    sheets_from: Optional[str] = Query(None, alias="sheetsFrom"),
    sheets_to: Optional[str] = Query(None, alias="sheetsTo"),
    time_from: Optional[str] = Query(None, alias="timeFrom"),
    time_to: Optional[str] = Query(None, alias="timeTo"),
    user: User = Depends(require_user),
):
    """
    Job counts over all jobs; sheet totals over jobs created in the
    sheets window; time totals over logs started in the time window.
    """
    stats = request.app.state.job_registry.dashboard_stats(
        sheets_from=sheets_from,
        sheets_to=sheets_to,
        time_from=time_from,
        time_to=time_to,
    )
    return dump(stats)
