"""Timesheet synchronization endpoints, called by the attendance module."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from timesheet_payroll.api.dependencies import ActorId, DbSession
from timesheet_payroll.api.schemas import RecalcRequest, SyncResponse
from timesheet_payroll.services.timesheet_sync import TimesheetSyncService

router = APIRouter(prefix="/payroll/sync", tags=["payroll-sync"])


@router.post("/attendance/{attendance_id}", response_model=SyncResponse)
async def sync_attendance(
    db: DbSession, actor: ActorId, attendance_id: Annotated[UUID, Path()]
) -> SyncResponse:
    """Reconcile after an attendance record was approved.

    A skipped sync is a normal 200 response with ``synced: false``.
    """
    result = await TimesheetSyncService(db).sync_from_approval(attendance_id, actor)
    return SyncResponse.model_validate(result)


@router.post("/recalc", response_model=SyncResponse)
async def recalc_after_rejection(
    db: DbSession, actor: ActorId, payload: RecalcRequest
) -> SyncResponse:
    """Reconcile after an attendance record left approved status."""
    result = await TimesheetSyncService(db).recalc_for_rejection(
        payload.employee_id, payload.period_date, actor
    )
    return SyncResponse.model_validate(result)
