"""Payroll error taxonomy.

Every error carries a machine-readable ``code`` so callers can map it to a
user-facing response without parsing messages. Missing records are not
errors: service lookups return ``None`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


class PayrollError(Exception):
    """Base class for structured payroll errors."""

    code: str = "PAYROLL_ERROR"
    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DuplicateEntryError(PayrollError):
    """A live entry already exists for the employee in this period."""

    code = "DUPLICATE_ENTRY"

    def __init__(self, employee_id: UUID, pay_period_id: UUID):
        self.employee_id = employee_id
        self.pay_period_id = pay_period_id
        super().__init__(
            f"Payroll entry already exists for employee {employee_id} "
            f"in pay period {pay_period_id}"
        )


class DuplicateRunError(PayrollError):
    """A live run already exists for the period."""

    code = "DUPLICATE_RUN"

    def __init__(self, pay_period_id: UUID):
        self.pay_period_id = pay_period_id
        super().__init__(f"Payroll run already exists for pay period {pay_period_id}")


class EntryLockedError(PayrollError):
    code = "ENTRY_LOCKED"

    def __init__(self, entry_id: UUID, reason: str | None = None):
        self.entry_id = entry_id
        self.reason = reason
        msg = f"Payroll entry {entry_id} is locked"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class AlreadyApprovedError(PayrollError):
    code = "ALREADY_APPROVED"

    def __init__(self, entry_id: UUID, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Payroll entry {entry_id} is already {status}")


class AlreadyProcessedError(PayrollError):
    code = "ALREADY_PROCESSED"

    def __init__(self, reference: str, reference_id: UUID, status: str):
        self.reference = reference
        self.reference_id = reference_id
        self.status = status
        super().__init__(f"{reference} {reference_id} is already {status}")


class InvalidTransitionError(PayrollError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ImmutabilityViolationError(PayrollError):
    """Raised on any attempt to change or remove an audit row."""

    code = "IMMUTABILITY_VIOLATION"
    status_code = 500

    def __init__(self, entity: str, entity_id: str, operation: str):
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(f"Cannot {operation} {entity} {entity_id}: rows are append-only")


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a timesheet sync; a skip is a value, not an error."""

    synced: bool
    reason: str | None = None
    payroll_entry_id: UUID | None = None
    created: bool = False

    @classmethod
    def skipped(cls, reason: str) -> SyncResult:
        return cls(synced=False, reason=reason)
