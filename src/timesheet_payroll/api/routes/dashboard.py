"""Payroll dashboard endpoint."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter

from timesheet_payroll.api.dependencies import DbSession
from timesheet_payroll.api.schemas import DashboardResponse
from timesheet_payroll.services.dashboard_service import DashboardService

router = APIRouter(prefix="/payroll", tags=["payroll-dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    db: DbSession,
    pay_period_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> DashboardResponse:
    dashboard = await DashboardService(db).get_dashboard(pay_period_id, date_from, date_to)
    return DashboardResponse.model_validate(dashboard)
