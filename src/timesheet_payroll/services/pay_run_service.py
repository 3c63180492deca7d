"""Payroll run lifecycle: one live run per pay period."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import distinct, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.models import PayrollEntry, PayrollRun
from timesheet_payroll.models.base import utcnow
from timesheet_payroll.services.audit_service import AuditService
from timesheet_payroll.services.errors import DuplicateRunError
from timesheet_payroll.services.locking_service import LockingService
from timesheet_payroll.services.numbering import next_run_number
from timesheet_payroll.services.pagination import Page, paginate
from timesheet_payroll.services.state_machine import (
    EntryStatus,
    RunStateMachine,
    RunStatus,
)

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "payroll_run"


@dataclass(frozen=True)
class RunFilters:
    search: str | None = None
    status: str | None = None
    pay_period_id: UUID | None = None


def _live_run_for_period(pay_period_id: UUID):
    return select(PayrollRun).where(
        PayrollRun.pay_period_id == pay_period_id,
        PayrollRun.is_deleted.is_(False),
        PayrollRun.status != RunStatus.CANCELLED.value,
    )


class PayRunService:
    """Service for managing payroll run lifecycle.

    Operations:
    - get_or_create_run: lazily create the period's single live run
    - create_run: explicit creation, refused if the period already has one
    - approve_run: draft → approved
    - process_run: cascade processed to entries, lock them, compute totals
    - mark_run_paid: processed → paid, cascading paid to entries
    - cancel_run: free the period for a new run
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.locking_service = LockingService(session)
        self.audit = AuditService(session)

    async def get_run(self, payroll_run_id: UUID) -> PayrollRun | None:
        result = await self.session.execute(
            select(PayrollRun).where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def find_live_run(self, pay_period_id: UUID) -> PayrollRun | None:
        """The non-deleted, non-cancelled run for a period, if any."""
        result = await self.session.execute(_live_run_for_period(pay_period_id))
        return result.scalar_one_or_none()

    async def list_runs(
        self, page: int = 1, limit: int = 20, filters: RunFilters | None = None
    ) -> Page[PayrollRun]:
        filters = filters or RunFilters()
        query = select(PayrollRun).where(PayrollRun.is_deleted.is_(False))
        if filters.status:
            query = query.where(PayrollRun.status == filters.status)
        if filters.pay_period_id:
            query = query.where(PayrollRun.pay_period_id == filters.pay_period_id)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(PayrollRun.run_number.ilike(pattern), PayrollRun.run_type.ilike(pattern))
            )
        query = query.order_by(PayrollRun.created_at.desc(), PayrollRun.run_number.desc())
        return await paginate(self.session, query, page, limit)

    async def _insert_run(
        self,
        pay_period_id: UUID,
        run_type: str,
        notes: str | None,
        actor: str | None,
    ) -> PayrollRun:
        run = PayrollRun(
            pay_period_id=pay_period_id,
            run_number=await next_run_number(self.session),
            run_type=run_type,
            status=RunStatus.DRAFT.value,
            notes=notes,
            created_by=actor,
        )
        async with self.session.begin_nested():
            self.session.add(run)
        logger.info("Created payroll run %s for period %s", run.run_number, pay_period_id)
        return run

    async def get_or_create_run(
        self, pay_period_id: UUID, actor: str | None = None
    ) -> PayrollRun:
        """Return the period's live run, creating a draft one if absent."""
        existing = await self.find_live_run(pay_period_id)
        if existing is not None:
            return existing

        try:
            run = await self._insert_run(pay_period_id, "regular", None, actor)
        except IntegrityError:
            logger.warning(
                "Lost race creating run for period %s; reading existing row", pay_period_id
            )
            winner = await self.find_live_run(pay_period_id)
            if winner is None:
                raise
            return winner

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "created",
            description=f"Payroll run {run.run_number} created",
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        return run

    async def create_run(
        self,
        pay_period_id: UUID,
        run_type: str = "regular",
        notes: str | None = None,
        actor: str | None = None,
    ) -> PayrollRun:
        """Explicitly create a run; the period must not already have a live one."""
        if await self.find_live_run(pay_period_id) is not None:
            raise DuplicateRunError(pay_period_id)

        try:
            run = await self._insert_run(pay_period_id, run_type, notes, actor)
        except IntegrityError as exc:
            raise DuplicateRunError(pay_period_id) from exc

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "created",
            description=f"Payroll run {run.run_number} created",
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        return run

    async def approve_run(self, payroll_run_id: UUID, actor: str | None = None) -> PayrollRun | None:
        run = await self.get_run(payroll_run_id)
        if run is None:
            return None

        RunStateMachine.validate_transition(run.status, RunStatus.APPROVED)
        before = run.to_snapshot()
        run.status = RunStatus.APPROVED.value
        run.approved_at = utcnow()
        run.approved_by = actor
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "approved",
            description=f"Payroll run {run.run_number} approved",
            old_values=before,
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        return run

    async def process_run(self, payroll_run_id: UUID, actor: str | None = None) -> PayrollRun | None:
        """Process a run and every entry attached to it.

        Entries are stamped processed and locked, and the run's totals are
        recomputed from them. Raises AlreadyProcessedError when the run is
        already processed or paid.
        """
        run = await self.get_run(payroll_run_id)
        if run is None:
            return None

        RunStateMachine.check_can_process(run.payroll_run_id, run.status)
        before = run.to_snapshot()
        now = utcnow()

        result = await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.payroll_run_id == run.payroll_run_id,
                PayrollEntry.is_deleted.is_(False),
            )
            .values(
                status=EntryStatus.PROCESSED.value,
                processed_date=now,
                processed_by=actor,
                updated_at=now,
            )
            .execution_options(synchronize_session="fetch")
        )
        entry_count = result.rowcount or 0
        await self.locking_service.lock_entries_for_run(run)

        await self._recompute_totals(run)
        run.status = RunStatus.PROCESSED.value
        run.processed_at = now
        run.processed_by = actor
        run.calculated_at = now
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "processed",
            description=f"Payroll run {run.run_number} processed ({entry_count} entries)",
            old_values=before,
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        logger.info("Processed payroll run %s with %d entries", run.run_number, entry_count)
        return run

    async def mark_run_paid(self, payroll_run_id: UUID, actor: str | None = None) -> PayrollRun | None:
        run = await self.get_run(payroll_run_id)
        if run is None:
            return None

        RunStateMachine.validate_transition(run.status, RunStatus.PAID)
        before = run.to_snapshot()
        now = utcnow()

        await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.payroll_run_id == run.payroll_run_id,
                PayrollEntry.is_deleted.is_(False),
                PayrollEntry.status == EntryStatus.PROCESSED.value,
            )
            .values(status=EntryStatus.PAID.value, paid_date=now, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        run.status = RunStatus.PAID.value
        run.paid_at = now
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "paid",
            description=f"Payroll run {run.run_number} paid",
            old_values=before,
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        return run

    async def cancel_run(
        self, payroll_run_id: UUID, actor: str | None = None, reason: str | None = None
    ) -> PayrollRun | None:
        """Cancel a run that has not been processed; its entries are cancelled too."""
        run = await self.get_run(payroll_run_id)
        if run is None:
            return None

        RunStateMachine.validate_transition(run.status, RunStatus.CANCELLED)
        before = run.to_snapshot()

        await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.payroll_run_id == run.payroll_run_id,
                PayrollEntry.is_deleted.is_(False),
            )
            .values(status=EntryStatus.CANCELLED.value, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        run.status = RunStatus.CANCELLED.value
        if reason:
            run.notes = reason
        await self.session.flush()

        await self.audit.record(
            REFERENCE_TYPE,
            run.payroll_run_id,
            "cancelled",
            description=f"Payroll run {run.run_number} cancelled" + (f": {reason}" if reason else ""),
            old_values=before,
            new_values=run.to_snapshot(),
            performed_by=actor,
        )
        return run

    async def _recompute_totals(self, run: PayrollRun) -> None:
        result = await self.session.execute(
            select(
                func.count(distinct(PayrollEntry.employee_id)),
                func.coalesce(func.sum(PayrollEntry.gross_pay), 0),
                func.coalesce(func.sum(PayrollEntry.total_deductions), 0),
                func.coalesce(func.sum(PayrollEntry.net_pay), 0),
                func.coalesce(func.sum(PayrollEntry.regular_hours), 0),
                func.coalesce(func.sum(PayrollEntry.overtime_hours), 0),
                func.coalesce(func.sum(PayrollEntry.total_hours), 0),
                func.coalesce(func.sum(PayrollEntry.bonuses), 0),
            ).where(
                PayrollEntry.payroll_run_id == run.payroll_run_id,
                PayrollEntry.is_deleted.is_(False),
            )
        )
        (
            run.total_employees,
            run.total_gross_pay,
            run.total_deductions,
            run.total_net_pay,
            run.total_regular_hours,
            run.total_overtime_hours,
            run.total_hours,
            run.total_bonuses,
        ) = result.one()
