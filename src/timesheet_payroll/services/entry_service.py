"""Manual payroll entry lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.calculators import (
    DeductionSpec,
    HourBuckets,
    PayCalculator,
    PayInputs,
    PayRates,
)
from timesheet_payroll.calculators.types import (
    DEFAULT_DOUBLE_OVERTIME_MULTIPLIER,
    DEFAULT_HOLIDAY_MULTIPLIER,
    DEFAULT_OVERTIME_MULTIPLIER,
)
from timesheet_payroll.models import Employee, PayrollEntry, PayrollRun, PayrollTimesheetEntry
from timesheet_payroll.services.audit_service import AuditService
from timesheet_payroll.services.errors import (
    AlreadyProcessedError,
    DuplicateEntryError,
    EntryLockedError,
    InvalidTransitionError,
)
from timesheet_payroll.services.locking_service import LockingService
from timesheet_payroll.services.numbering import next_entry_number
from timesheet_payroll.services.pagination import Page, paginate
from timesheet_payroll.services.state_machine import (
    EntryStateMachine,
    EntryStatus,
    RunStateMachine,
    RunStatus,
)

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "payroll_entry"

HOUR_FIELDS = (
    "regular_hours",
    "overtime_hours",
    "double_overtime_hours",
    "pto_hours",
    "sick_hours",
    "holiday_hours",
)
RATE_FIELDS = (
    "hourly_rate",
    "overtime_multiplier",
    "double_overtime_multiplier",
    "holiday_multiplier",
)
DETAIL_FIELDS = ("payment_method", "check_number", "scheduled_date", "notes")
UPDATABLE_FIELDS = frozenset(
    HOUR_FIELDS + RATE_FIELDS + DETAIL_FIELDS + ("bonuses", "total_deductions", "deduction_rate")
)


@dataclass
class EntryDraft:
    """Input for a manually created entry."""

    payroll_run_id: UUID
    employee_id: UUID
    hourly_rate: Decimal = Decimal("0")
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    double_overtime_hours: Decimal = Decimal("0")
    pto_hours: Decimal = Decimal("0")
    sick_hours: Decimal = Decimal("0")
    holiday_hours: Decimal = Decimal("0")
    overtime_multiplier: Decimal = DEFAULT_OVERTIME_MULTIPLIER
    double_overtime_multiplier: Decimal = DEFAULT_DOUBLE_OVERTIME_MULTIPLIER
    holiday_multiplier: Decimal = DEFAULT_HOLIDAY_MULTIPLIER
    bonuses: Decimal = Decimal("0")
    total_deductions: Decimal | None = None
    deduction_rate: Decimal | None = None
    payment_method: str = "direct_deposit"
    check_number: str | None = None
    scheduled_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class EntryFilters:
    search: str | None = None
    pay_period_id: UUID | None = None
    status: str | None = None
    employee_id: UUID | None = None
    payroll_run_id: UUID | None = None


def pay_inputs_from(values: Mapping[str, Any]) -> PayInputs:
    """Build calculator input from entry-shaped values.

    An explicit ``total_deductions`` wins over ``deduction_rate``.
    """
    return PayInputs(
        hours=HourBuckets(
            regular=values["regular_hours"],
            overtime=values["overtime_hours"],
            double_overtime=values["double_overtime_hours"],
            pto=values["pto_hours"],
            sick=values["sick_hours"],
            holiday=values["holiday_hours"],
        ),
        rates=PayRates(
            hourly_rate=values["hourly_rate"],
            overtime_multiplier=values["overtime_multiplier"],
            double_overtime_multiplier=values["double_overtime_multiplier"],
            holiday_multiplier=values["holiday_multiplier"],
        ),
        bonuses=values["bonuses"],
        deductions=DeductionSpec(
            amount=values.get("total_deductions"),
            rate=values.get("deduction_rate"),
        ),
    )


class EntryService:
    """Create, read, update, delete, submit, approve and reject payroll entries.

    Every successful mutation writes one audit row in the same transaction.
    Missing entries, runs or employees yield ``None`` rather than an error.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)
        self.locking_service = LockingService(session)

    # ----- reads -----

    async def get_entry(self, payroll_entry_id: UUID) -> PayrollEntry | None:
        result = await self.session.execute(
            select(PayrollEntry).where(
                PayrollEntry.payroll_entry_id == payroll_entry_id,
                PayrollEntry.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def list_entries(
        self, page: int = 1, limit: int = 20, filters: EntryFilters | None = None
    ) -> Page[PayrollEntry]:
        filters = filters or EntryFilters()
        query = (
            select(PayrollEntry)
            .join(PayrollRun, PayrollRun.payroll_run_id == PayrollEntry.payroll_run_id)
            .join(Employee, Employee.employee_id == PayrollEntry.employee_id)
            .where(PayrollEntry.is_deleted.is_(False))
        )
        if filters.pay_period_id:
            query = query.where(PayrollRun.pay_period_id == filters.pay_period_id)
        if filters.payroll_run_id:
            query = query.where(PayrollEntry.payroll_run_id == filters.payroll_run_id)
        if filters.status:
            query = query.where(PayrollEntry.status == filters.status)
        if filters.employee_id:
            query = query.where(PayrollEntry.employee_id == filters.employee_id)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    PayrollEntry.entry_number.ilike(pattern),
                    Employee.employee_number.ilike(pattern),
                    Employee.full_name.ilike(pattern),
                )
            )
        query = query.order_by(PayrollEntry.created_at.desc(), PayrollEntry.entry_number.desc())
        return await paginate(self.session, query, page, limit)

    async def find_entry_in_period(
        self, employee_id: UUID, pay_period_id: UUID
    ) -> PayrollEntry | None:
        """Live entry for the employee in any live run of the period."""
        result = await self.session.execute(
            select(PayrollEntry)
            .join(PayrollRun, PayrollRun.payroll_run_id == PayrollEntry.payroll_run_id)
            .where(
                PayrollEntry.employee_id == employee_id,
                PayrollRun.pay_period_id == pay_period_id,
                PayrollEntry.is_deleted.is_(False),
                PayrollRun.is_deleted.is_(False),
                PayrollRun.status != RunStatus.CANCELLED.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_timesheet_links(self, payroll_entry_id: UUID) -> list[PayrollTimesheetEntry]:
        """Attendance links currently attached to an entry."""
        result = await self.session.execute(
            select(PayrollTimesheetEntry)
            .where(PayrollTimesheetEntry.payroll_entry_id == payroll_entry_id)
            .order_by(PayrollTimesheetEntry.attendance_id)
        )
        return list(result.scalars().all())

    # ----- mutations -----

    async def create_entry(self, draft: EntryDraft, actor: str | None = None) -> PayrollEntry | None:
        """Create a manual draft entry.

        Returns None when the run or employee does not exist. Raises
        DuplicateEntryError when the employee already has an entry in the
        run's period.
        """
        run = await self.session.get(PayrollRun, draft.payroll_run_id)
        if run is None or run.is_deleted:
            return None
        if RunStateMachine.is_closed(run.status):
            raise AlreadyProcessedError("Payroll run", run.payroll_run_id, run.status)
        if run.status == RunStatus.CANCELLED:
            raise InvalidTransitionError(run.status, EntryStatus.DRAFT.value, "run is cancelled")

        employee = await self.session.get(Employee, draft.employee_id)
        if employee is None or employee.is_deleted:
            return None

        if await self.find_entry_in_period(draft.employee_id, run.pay_period_id) is not None:
            raise DuplicateEntryError(draft.employee_id, run.pay_period_id)

        values = {name: getattr(draft, name) for name in HOUR_FIELDS + RATE_FIELDS}
        values.update(
            bonuses=draft.bonuses,
            total_deductions=draft.total_deductions,
            deduction_rate=draft.deduction_rate,
        )
        breakdown = PayCalculator.calculate(pay_inputs_from(values))

        entry = PayrollEntry(
            payroll_run_id=run.payroll_run_id,
            employee_id=draft.employee_id,
            entry_number=await next_entry_number(self.session),
            status=EntryStatus.DRAFT.value,
            source_type="manual",
            approval_workflow="manual",
            payment_method=draft.payment_method,
            check_number=draft.check_number,
            scheduled_date=draft.scheduled_date,
            notes=draft.notes,
            created_by=actor,
            **breakdown.to_entry_values(),
        )
        try:
            async with self.session.begin_nested():
                self.session.add(entry)
        except IntegrityError as exc:
            raise DuplicateEntryError(draft.employee_id, run.pay_period_id) from exc

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "created",
            description="Payroll entry created",
            new_values=entry.to_snapshot(),
            performed_by=actor,
        )
        return entry

    async def update_entry(
        self,
        payroll_entry_id: UUID,
        changes: Mapping[str, Any],
        actor: str | None = None,
    ) -> PayrollEntry | None:
        """Apply changes and recalculate pay.

        A rate-based deduction is kept unless an explicit amount or a new
        rate is supplied.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        self.locking_service.ensure_unlocked(entry)

        before = entry.to_snapshot()
        values = {name: getattr(entry, name) for name in HOUR_FIELDS + RATE_FIELDS}
        values["bonuses"] = entry.bonuses
        if entry.deduction_rate is not None:
            values["deduction_rate"] = entry.deduction_rate
        else:
            values["total_deductions"] = entry.total_deductions

        for name, value in changes.items():
            if name in DETAIL_FIELDS:
                continue
            if name == "total_deductions":
                values.pop("deduction_rate", None)
            elif name == "deduction_rate":
                values.pop("total_deductions", None)
            values[name] = value

        breakdown = PayCalculator.calculate(pay_inputs_from(values))
        for name, value in breakdown.to_entry_values().items():
            setattr(entry, name, value)
        for name in DETAIL_FIELDS:
            if name in changes:
                setattr(entry, name, changes[name])
        if entry.source_type == "timesheet_auto":
            entry.timesheet_integration_status = "manual_override"
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "updated",
            description="Payroll entry updated",
            old_values=before,
            new_values=entry.to_snapshot(),
            performed_by=actor,
        )
        return entry

    async def delete_entry(self, payroll_entry_id: UUID, actor: str | None = None) -> PayrollEntry | None:
        """Soft-delete an entry."""
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        self.locking_service.ensure_unlocked(entry)

        before = entry.to_snapshot()
        entry.is_deleted = True
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "deleted",
            description="Payroll entry deleted",
            old_values=before,
            performed_by=actor,
        )
        return entry

    async def submit_entry(self, payroll_entry_id: UUID, actor: str | None = None) -> PayrollEntry | None:
        """Send a draft entry for approval."""
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        EntryStateMachine.validate_transition(entry.status, EntryStatus.PENDING_APPROVAL)

        before = entry.to_snapshot()
        entry.status = EntryStatus.PENDING_APPROVAL.value
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "submitted",
            description="Payroll entry submitted for approval",
            old_values=before,
            new_values=entry.to_snapshot(),
            performed_by=actor,
        )
        return entry

    async def approve_entry(
        self,
        payroll_entry_id: UUID,
        actor: str | None = None,
        notes: str | None = None,
    ) -> PayrollEntry | None:
        """Approve an entry; raises AlreadyApprovedError once approved or later."""
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        EntryStateMachine.check_can_approve(entry.payroll_entry_id, entry.status)

        before = entry.to_snapshot()
        entry.status = EntryStatus.APPROVED.value
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "approved",
            description=notes or "Payroll entry approved",
            old_values=before,
            new_values=entry.to_snapshot(),
            performed_by=actor,
        )
        return entry

    async def reject_entry(
        self,
        payroll_entry_id: UUID,
        reason: str,
        actor: str | None = None,
    ) -> PayrollEntry | None:
        """Send an entry back to draft with the reason stored in its notes."""
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        EntryStateMachine.check_can_reject(entry.payroll_entry_id, entry.status)

        before = entry.to_snapshot()
        entry.status = EntryStatus.DRAFT.value
        entry.notes = reason
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "rejected",
            description=f"Payroll entry rejected: {reason}",
            old_values=before,
            new_values=entry.to_snapshot(),
            performed_by=actor,
        )
        return entry

    async def lock_entry(
        self, payroll_entry_id: UUID, reason: str, actor: str | None = None
    ) -> PayrollEntry | None:
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None

        self.locking_service.lock_entry(entry, reason)
        await self.session.flush()
        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "locked",
            description=f"Payroll entry locked: {reason}",
            performed_by=actor,
        )
        return entry

    async def unlock_entry(self, payroll_entry_id: UUID, actor: str | None = None) -> PayrollEntry | None:
        """Release an explicit hold; entries of processed or paid runs stay locked."""
        entry = await self.get_entry(payroll_entry_id)
        if entry is None:
            return None
        run = await self.session.get(PayrollRun, entry.payroll_run_id)
        if run is not None and RunStateMachine.is_closed(run.status):
            raise EntryLockedError(entry.payroll_entry_id, entry.locked_reason)

        self.locking_service.unlock_entry(entry)
        await self.session.flush()
        await self.audit.record(
            REFERENCE_TYPE,
            entry.payroll_entry_id,
            "unlocked",
            description="Payroll entry unlocked",
            performed_by=actor,
        )
        return entry
