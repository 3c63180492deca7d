"""Payroll dashboard read model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.models import ENTRY_STATUSES, PayrollEntry, PayrollRun


@dataclass
class DashboardSummary:
    total_net_pay: Decimal = Decimal("0")
    total_gross_pay: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_employees: int = 0
    total_hours: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    double_overtime_hours: Decimal = Decimal("0")
    pto_hours: Decimal = Decimal("0")
    sick_hours: Decimal = Decimal("0")
    holiday_hours: Decimal = Decimal("0")
    total_bonuses: Decimal = Decimal("0")


@dataclass
class Dashboard:
    summary: DashboardSummary
    status_counts: dict[str, int] = field(default_factory=dict)


class DashboardService:
    """Sums and status counts over live payroll entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_dashboard(
        self,
        pay_period_id: UUID | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> Dashboard:
        """Aggregate entries, optionally for one period or a scheduled-date range.

        The date range only applies when both bounds are given.
        """
        conditions = [PayrollEntry.is_deleted.is_(False)]
        if pay_period_id is not None:
            conditions.append(
                PayrollEntry.payroll_run_id.in_(
                    select(PayrollRun.payroll_run_id).where(
                        PayrollRun.pay_period_id == pay_period_id
                    )
                )
            )
        if date_from is not None and date_to is not None:
            conditions.append(PayrollEntry.scheduled_date >= date_from)
            conditions.append(PayrollEntry.scheduled_date <= date_to)

        def total(column):
            return func.coalesce(func.sum(column), 0)

        row = (
            await self.session.execute(
                select(
                    total(PayrollEntry.net_pay),
                    total(PayrollEntry.gross_pay),
                    total(PayrollEntry.total_deductions),
                    func.count(distinct(PayrollEntry.employee_id)),
                    total(PayrollEntry.total_hours),
                    total(PayrollEntry.regular_hours),
                    total(PayrollEntry.overtime_hours),
                    total(PayrollEntry.double_overtime_hours),
                    total(PayrollEntry.pto_hours),
                    total(PayrollEntry.sick_hours),
                    total(PayrollEntry.holiday_hours),
                    total(PayrollEntry.bonuses),
                ).where(*conditions)
            )
        ).one()
        summary = DashboardSummary(*row)

        counts = dict.fromkeys(ENTRY_STATUSES, 0)
        result = await self.session.execute(
            select(PayrollEntry.status, func.count())
            .where(*conditions)
            .group_by(PayrollEntry.status)
        )
        for status, count in result.all():
            counts[status] = count
        return Dashboard(summary=summary, status_counts=counts)
