"""Audit trail endpoint."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Path

from timesheet_payroll.api.dependencies import DbSession
from timesheet_payroll.api.schemas import AuditLogResponse
from timesheet_payroll.services.audit_service import AuditService

router = APIRouter(prefix="/payroll/audit", tags=["payroll-audit"])


@router.get("/{reference_type}/{reference_id}", response_model=list[AuditLogResponse])
async def list_audit(
    db: DbSession,
    reference_type: Annotated[Literal["payroll_entry", "payroll_run"], Path()],
    reference_id: Annotated[UUID, Path()],
) -> list[AuditLogResponse]:
    rows = await AuditService(db).list_for(reference_type, reference_id)
    return [AuditLogResponse.model_validate(row) for row in rows]
