"""Append-only payroll audit trail."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.models import PayrollAuditLog

TIMESHEET_AUTOMATION = "timesheet_integration"


class AuditService:
    """Writes and reads audit rows.

    Rows are only ever added; the ORM listeners registered with the models
    reject updates and deletes.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        reference_type: str,
        reference_id: UUID,
        action: str,
        *,
        description: str | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        performed_by: str | None = None,
        automation_source: str | None = None,
    ) -> PayrollAuditLog:
        """Add one audit row to the current transaction."""
        row = PayrollAuditLog(
            reference_type=reference_type,
            reference_id=reference_id,
            action=action,
            description=description,
            old_values=old_values,
            new_values=new_values,
            performed_by=performed_by,
            is_automated_action=automation_source is not None,
            automation_source=automation_source,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_for(self, reference_type: str, reference_id: UUID) -> list[PayrollAuditLog]:
        """Audit rows for one record, oldest first."""
        result = await self.session.execute(
            select(PayrollAuditLog)
            .where(
                PayrollAuditLog.reference_type == reference_type,
                PayrollAuditLog.reference_id == reference_id,
            )
            .order_by(PayrollAuditLog.audit_id)
        )
        return list(result.scalars().all())
