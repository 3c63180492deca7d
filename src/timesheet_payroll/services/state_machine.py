"""Payroll entry and run state machines with transition validation."""

from __future__ import annotations

from enum import Enum

from timesheet_payroll.services.errors import (
    AlreadyApprovedError,
    AlreadyProcessedError,
    InvalidTransitionError,
)


class EntryStatus(str, Enum):
    """Payroll entry status values."""

    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PROCESSED = "processed"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    PROCESSED = "processed"
    PAID = "paid"
    CANCELLED = "cancelled"


class EntryStateMachine:
    """State machine for payroll entry status transitions.

    Allowed transitions:
    - draft → pending_approval | approved | cancelled
    - pending_approval → approved | draft (rejection)
    - approved → draft (rejection) | processed
    - processed → paid | failed
    - failed → processed (retry)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        EntryStatus.DRAFT: [
            EntryStatus.PENDING_APPROVAL,
            EntryStatus.APPROVED,
            EntryStatus.CANCELLED,
        ],
        EntryStatus.PENDING_APPROVAL: [EntryStatus.APPROVED, EntryStatus.DRAFT],
        EntryStatus.APPROVED: [EntryStatus.DRAFT, EntryStatus.PROCESSED],
        EntryStatus.PROCESSED: [EntryStatus.PAID, EntryStatus.FAILED],
        EntryStatus.FAILED: [EntryStatus.PROCESSED],
        EntryStatus.PAID: [],
        EntryStatus.CANCELLED: [],
    }

    # Approval is refused once an entry has reached any of these
    APPROVAL_BLOCKED = {EntryStatus.APPROVED, EntryStatus.PROCESSED, EntryStatus.PAID}

    # Rejection is refused once money has moved
    REJECTION_BLOCKED = {EntryStatus.PROCESSED, EntryStatus.PAID}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def check_can_approve(cls, entry_id, status: str) -> None:
        if status in cls.APPROVAL_BLOCKED:
            raise AlreadyApprovedError(entry_id, status)
        cls.validate_transition(status, EntryStatus.APPROVED)

    @classmethod
    def check_can_reject(cls, entry_id, status: str) -> None:
        if status in cls.REJECTION_BLOCKED:
            raise AlreadyProcessedError("Payroll entry", entry_id, status)
        if status == EntryStatus.DRAFT:
            # Rejecting a draft only records the reason
            return
        cls.validate_transition(status, EntryStatus.DRAFT)


class RunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → approved | processed | cancelled
    - approved → processed | cancelled
    - processed → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        RunStatus.DRAFT: [RunStatus.APPROVED, RunStatus.PROCESSED, RunStatus.CANCELLED],
        RunStatus.APPROVED: [RunStatus.PROCESSED, RunStatus.CANCELLED],
        RunStatus.PROCESSED: [RunStatus.PAID],
        RunStatus.PAID: [],
        RunStatus.CANCELLED: [],
    }

    # Entries attached to runs in these states are locked
    LOCKING = {RunStatus.PROCESSED, RunStatus.PAID}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def is_closed(cls, status: str) -> bool:
        """Whether the run no longer accepts new or changed entries."""
        return status in cls.LOCKING

    @classmethod
    def check_can_process(cls, run_id, status: str) -> None:
        if status in cls.LOCKING:
            raise AlreadyProcessedError("Payroll run", run_id, status)
        cls.validate_transition(status, RunStatus.PROCESSED)
