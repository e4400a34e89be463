"""Summary routes: one user's records across every entity kind for a day or a date range."""

from fastapi import APIRouter, Depends, Query

from health_analytics.container import ServiceContainer
from health_analytics.models.domain.summary_domain import HealthSummary
from health_analytics.routes.dependencies import get_container
from health_analytics.routes.records import ERROR_RESPONSES

router = APIRouter(prefix="/summary", tags=["summary"], responses=ERROR_RESPONSES)


@router.get("/daily", response_model=HealthSummary)
async def get_daily_summary(
    user_id: str = Query(..., min_length=1, description="User to summarize"),
    date: str = Query(..., description="Calendar day, YYYY-MM-DD"),
    container: ServiceContainer = Depends(get_container),
):
    """Records created on ``date`` in the reference time zone."""
    return await container.aggregator.get_daily_summary(
        user_id, date, timeout=container.query_timeout
    )


@router.get("/weekly", response_model=HealthSummary)
async def get_weekly_summary(
    user_id: str = Query(..., min_length=1, description="User to summarize"),
    start_date: str = Query(..., description="First day, YYYY-MM-DD"),
    end_date: str = Query(..., description="Last day (inclusive), YYYY-MM-DD"),
    container: ServiceContainer = Depends(get_container),
):
    """Records created from ``start_date`` through ``end_date`` inclusive."""
    return await container.aggregator.get_weekly_summary(
        user_id, start_date, end_date, timeout=container.query_timeout
    )
