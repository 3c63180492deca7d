"""API routes."""

from timesheet_payroll.api.routes.audit import router as audit_router
from timesheet_payroll.api.routes.dashboard import router as dashboard_router
from timesheet_payroll.api.routes.entries import router as entries_router
from timesheet_payroll.api.routes.health import router as health_router
from timesheet_payroll.api.routes.runs import router as runs_router
from timesheet_payroll.api.routes.sync import router as sync_router

__all__ = [
    "audit_router",
    "dashboard_router",
    "entries_router",
    "health_router",
    "runs_router",
    "sync_router",
]
