"""Entry locking for processed runs and explicit holds."""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.models import PayrollEntry, PayrollRun
from timesheet_payroll.services.errors import EntryLockedError

RUN_PROCESSED_REASON = "payroll_run_processed"


class LockingService:
    """Sets and checks the advisory ``is_locked`` flag on payroll entries.

    The flag is checked before any mutation; it is not a database lock.
    Processing a run locks every entry attached to it so the amounts that
    were paid out cannot drift afterwards.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lock_entries_for_run(
        self, run: PayrollRun, reason: str = RUN_PROCESSED_REASON
    ) -> int:
        """Lock all live entries of a run.

        Returns count of locked records.
        """
        result = await self.session.execute(
            update(PayrollEntry)
            .where(
                PayrollEntry.payroll_run_id == run.payroll_run_id,
                PayrollEntry.is_deleted.is_(False),
            )
            .values(is_locked=True, locked_reason=reason)
        )
        return result.rowcount or 0

    @staticmethod
    def ensure_unlocked(entry: PayrollEntry) -> None:
        """Raise EntryLockedError if the entry may not be changed."""
        if entry.is_locked:
            raise EntryLockedError(entry.payroll_entry_id, entry.locked_reason)

    @staticmethod
    def lock_entry(entry: PayrollEntry, reason: str) -> None:
        entry.is_locked = True
        entry.locked_reason = reason

    @staticmethod
    def unlock_entry(entry: PayrollEntry) -> None:
        entry.is_locked = False
        entry.locked_reason = None
