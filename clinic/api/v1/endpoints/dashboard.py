# clinic/api/v1/endpoints/dashboard.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from clinic.core.clinic_context import ClinicContext, get_clinic_context
from clinic.schemas.report import ChartRange, DashboardSummary, RevenueChart
from clinic.services import report_service

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary, tags=["dashboard"])
def get_dashboard_summary(
    ctx: ClinicContext = Depends(get_clinic_context),
) -> DashboardSummary:
    """
    Headline counts, low-stock items and the most recent treatments.
    """
    return report_service.dashboard_summary(ctx.state)


@router.get("/revenue-chart", response_model=RevenueChart, tags=["dashboard"])
def get_revenue_chart(
    range: ChartRange = Query(
        "week",
        description="Chart window ending today: week (7 days), month (30 days) or year (365 days)",
    ),
    ctx: ClinicContext = Depends(get_clinic_context),
) -> RevenueChart:
    return report_service.revenue_chart(ctx.state, range)
