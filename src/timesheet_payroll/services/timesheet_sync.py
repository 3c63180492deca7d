"""Reconcile payroll entries with approved attendance.

Every pass recomputes the employee's entry for the whole period from the
attendance records that are approved right now. Nothing is applied as a
delta, so any order or repetition of approvals and rejections converges to
the same entry and the same set of attendance links.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.calculators import (
    DeductionSpec,
    HourBuckets,
    PayCalculator,
    PayInputs,
    PayRates,
    PeriodBounds,
    month_bounds_for,
    week_bounds_for,
)
from timesheet_payroll.calculators.types import PayBreakdown
from timesheet_payroll.config import Settings, get_settings
from timesheet_payroll.models import (
    AttendanceRecord,
    Employee,
    PayPeriod,
    PayrollEntry,
    PayrollRun,
    PayrollTimesheetEntry,
    Position,
)
from timesheet_payroll.services.audit_service import TIMESHEET_AUTOMATION, AuditService
from timesheet_payroll.services.errors import SyncResult
from timesheet_payroll.services.numbering import next_entry_number
from timesheet_payroll.services.pay_run_service import PayRunService
from timesheet_payroll.services.period_service import PeriodService
from timesheet_payroll.services.state_machine import EntryStatus, RunStateMachine

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
APPROVED = "approved"
SALARY = "salary"
HOURLY_POSITION = "hourly"


def _normalize_pay_type(value: str | None) -> str | None:
    """Trimmed, lowercased pay type; blank means unset."""
    if value is None:
        return None
    return value.strip().lower() or None


@dataclass(frozen=True)
class PayClassification:
    """Effective pay terms for one employee."""

    salaried: bool
    amount: Decimal

    @property
    def hourly_rate(self) -> Decimal:
        return ZERO if self.salaried else self.amount


@dataclass(frozen=True)
class AttendanceHours:
    """Hours one approved attendance record contributes to the entry."""

    attendance_id: UUID
    total: Decimal
    regular: Decimal
    overtime: Decimal


class TimesheetSyncService:
    """Keeps one payroll entry per employee per period in step with attendance.

    Classification and rate problems never raise: they come back as
    ``SyncResult(synced=False, reason=...)`` so that attendance approval is
    never blocked by payroll configuration.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.periods = PeriodService(session)
        self.runs = PayRunService(session)
        self.audit = AuditService(session)

    async def sync_from_approval(self, attendance_id: UUID, actor: str | None = None) -> SyncResult:
        """Bring the employee's entry up to date after a record is approved."""
        record = await self.session.get(AttendanceRecord, attendance_id)
        if record is None:
            return self._skip("Attendance record not found", attendance_id=attendance_id)
        if record.status != APPROVED:
            return self._skip(
                f"Attendance record is {record.status}, not approved",
                attendance_id=attendance_id,
                employee_id=record.employee_id,
            )
        return await self._reconcile(record.employee_id, record.work_date, actor, create=True)

    async def recalc_for_rejection(
        self, employee_id: UUID, period_date: date, actor: str | None = None
    ) -> SyncResult:
        """Correct an existing hourly entry after a record leaves approved status.

        Only looks up the period, run and entry; none of them is created.
        """
        return await self._reconcile(employee_id, period_date, actor, create=False)

    # ----- classification -----

    async def resolve_classification(self, employee: Employee) -> PayClassification | str:
        """Effective pay terms, or the reason they cannot be determined.

        Employee-level overrides win over the position's defaults. A salary
        amount only ever comes from a salaried position; a position's hourly
        rate is never read as a monthly salary.
        """
        position = None
        if employee.position_id is not None:
            position = await self.session.get(Position, employee.position_id)
        position_type = _normalize_pay_type(position.pay_type) if position else None

        pay_type = _normalize_pay_type(employee.pay_type) or position_type
        if pay_type == SALARY:
            if position_type != SALARY or position.pay_rate is None or position.pay_rate <= 0:
                return "Salaried employee has no positive salary amount on a salaried position"
            return PayClassification(salaried=True, amount=position.pay_rate)

        if employee.hourly_rate is not None and employee.hourly_rate > 0:
            return PayClassification(salaried=False, amount=employee.hourly_rate)
        if (
            position_type == HOURLY_POSITION
            and position.pay_rate is not None
            and position.pay_rate > 0
        ):
            return PayClassification(salaried=False, amount=position.pay_rate)
        return "No hourly rate configured for employee"

    # ----- reconciliation -----

    async def _reconcile(
        self, employee_id: UUID, day: date, actor: str | None, *, create: bool
    ) -> SyncResult:
        employee = await self.session.get(Employee, employee_id)
        if employee is None or employee.is_deleted:
            return self._skip("Employee not found", employee_id=employee_id)

        classification = await self.resolve_classification(employee)
        if isinstance(classification, str):
            return self._skip(classification, employee_id=employee_id)
        if classification.salaried and not create:
            return self._skip("Salaried pay does not depend on attendance", employee_id=employee_id)

        bounds = month_bounds_for(day) if classification.salaried else week_bounds_for(day)
        if create:
            period = await self.periods.get_or_create_period(bounds)
            run = await self.runs.get_or_create_run(period.pay_period_id)
        else:
            period = await self.periods.find_period(bounds)
            run = await self.runs.find_live_run(period.pay_period_id) if period else None
            if run is None:
                return self._skip("No payroll run for period", employee_id=employee_id)

        entry = await self._find_entry(run.payroll_run_id, employee_id)
        if entry is None and not create:
            return self._skip("No payroll entry to recalculate", employee_id=employee_id)
        if entry is not None and entry.is_locked:
            return self._skip("Payroll entry is locked", employee_id=employee_id)
        if RunStateMachine.is_closed(run.status):
            return self._skip(f"Payroll run is already {run.status}", employee_id=employee_id)

        attendance = await self._approved_hours(employee_id, bounds)
        breakdown = self._calculate(classification, attendance)

        created = entry is None
        if created:
            entry = await self._insert_entry(run, period, employee_id, breakdown)
            if entry is None:
                # a concurrent pass created it first
                entry = await self._find_entry(run.payroll_run_id, employee_id)
                if entry is None or entry.is_locked:
                    return self._skip("Payroll entry changed concurrently", employee_id=employee_id)
                created = False

        before = None if created else entry.to_snapshot()
        if not created:
            for name, value in breakdown.to_entry_values().items():
                setattr(entry, name, value)
            entry.source_type = "timesheet_auto"
            entry.approval_workflow = "auto_from_timesheet"
            entry.timesheet_integration_status = "auto_generated"
        await self._replace_links(entry, attendance)
        await self.session.flush()

        await self.audit.record(
            "payroll_entry",
            entry.payroll_entry_id,
            "created" if created else "updated",
            description=(
                f"Payroll entry {'created' if created else 'recalculated'} from "
                f"{len(attendance)} approved attendance record(s)"
            ),
            old_values=before,
            new_values=entry.to_snapshot(),
            performed_by=actor,
            automation_source=TIMESHEET_AUTOMATION,
        )
        logger.info(
            "Synced payroll entry %s for employee %s: %s hours, gross %s",
            entry.entry_number,
            employee_id,
            breakdown.total_hours,
            breakdown.gross_pay,
        )
        return SyncResult(synced=True, payroll_entry_id=entry.payroll_entry_id, created=created)

    async def _find_entry(self, payroll_run_id: UUID, employee_id: UUID) -> PayrollEntry | None:
        result = await self.session.execute(
            select(PayrollEntry).where(
                PayrollEntry.payroll_run_id == payroll_run_id,
                PayrollEntry.employee_id == employee_id,
                PayrollEntry.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def _approved_hours(self, employee_id: UUID, bounds: PeriodBounds) -> list[AttendanceHours]:
        """Approved records in the period, split into regular and overtime hours."""
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.status == APPROVED,
                AttendanceRecord.work_date >= bounds.start,
                AttendanceRecord.work_date <= bounds.end,
            )
            .order_by(AttendanceRecord.work_date, AttendanceRecord.attendance_id)
        )
        hours = []
        for record in result.scalars():
            total = record.total_hours or ZERO
            overtime = record.overtime_hours or ZERO
            hours.append(
                AttendanceHours(
                    attendance_id=record.attendance_id,
                    total=total,
                    regular=max(ZERO, total - overtime),
                    overtime=overtime,
                )
            )
        return hours

    def _calculate(
        self, classification: PayClassification, attendance: list[AttendanceHours]
    ) -> PayBreakdown:
        if classification.salaried:
            buckets = HourBuckets()
            bonuses = classification.amount
        else:
            buckets = HourBuckets(
                regular=sum((a.regular for a in attendance), ZERO),
                overtime=sum((a.overtime for a in attendance), ZERO),
            )
            bonuses = ZERO

        return PayCalculator.calculate(
            PayInputs(
                hours=buckets,
                rates=PayRates(
                    hourly_rate=classification.hourly_rate,
                    overtime_multiplier=self.settings.overtime_multiplier,
                    double_overtime_multiplier=self.settings.double_overtime_multiplier,
                    holiday_multiplier=self.settings.holiday_multiplier,
                ),
                bonuses=bonuses,
                deductions=DeductionSpec(rate=self.settings.default_deduction_rate),
            )
        )

    async def _insert_entry(
        self,
        run: PayrollRun,
        period: PayPeriod,
        employee_id: UUID,
        breakdown: PayBreakdown,
    ) -> PayrollEntry | None:
        entry = PayrollEntry(
            payroll_run_id=run.payroll_run_id,
            employee_id=employee_id,
            entry_number=await next_entry_number(self.session),
            status=EntryStatus.DRAFT.value,
            source_type="timesheet_auto",
            approval_workflow="auto_from_timesheet",
            timesheet_integration_status="auto_generated",
            payment_method=self.settings.default_payment_method,
            scheduled_date=period.pay_date,
            **breakdown.to_entry_values(),
        )
        try:
            async with self.session.begin_nested():
                self.session.add(entry)
        except IntegrityError:
            logger.warning(
                "Lost race creating payroll entry for employee %s in run %s",
                employee_id,
                run.run_number,
            )
            return None
        return entry

    async def _replace_links(self, entry: PayrollEntry, attendance: list[AttendanceHours]) -> None:
        """Make the entry's links exactly the current approved record set."""
        await self.session.execute(
            delete(PayrollTimesheetEntry).where(
                PayrollTimesheetEntry.payroll_entry_id == entry.payroll_entry_id
            )
        )
        self.session.add_all(
            PayrollTimesheetEntry(
                payroll_entry_id=entry.payroll_entry_id,
                attendance_id=item.attendance_id,
                hours_included=item.total,
                overtime_hours=item.overtime,
                double_overtime_hours=ZERO,
                included_in_payroll=True,
            )
            for item in attendance
        )

    @staticmethod
    def _skip(reason: str, **context: object) -> SyncResult:
        logger.warning("Payroll sync skipped: %s %s", reason, context)
        return SyncResult.skipped(reason)
