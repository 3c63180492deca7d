"""ORM-level enforcement that payroll audit rows are append-only.

SQLAlchemy fires ``before_update``/``before_delete`` before the statement
reaches the database, so a blocked change aborts the flush and the
surrounding transaction rolls back. Bulk ``update()``/``delete()``
statements bypass mapper events; nothing in this package issues them
against the audit table.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event

logger = logging.getLogger(__name__)


def _block_audit_update(mapper: Any, connection: Any, target: Any) -> None:
    from timesheet_payroll.services.errors import ImmutabilityViolationError

    logger.error(
        "Blocked UPDATE of payroll audit row %s (%s %s)",
        target.audit_id,
        target.reference_type,
        target.action,
    )
    raise ImmutabilityViolationError("PayrollAuditLog", str(target.audit_id), "update")


def _block_audit_delete(mapper: Any, connection: Any, target: Any) -> None:
    from timesheet_payroll.services.errors import ImmutabilityViolationError

    logger.error(
        "Blocked DELETE of payroll audit row %s (%s %s)",
        target.audit_id,
        target.reference_type,
        target.action,
    )
    raise ImmutabilityViolationError("PayrollAuditLog", str(target.audit_id), "delete")


def register_immutability_listeners() -> None:
    """Register the audit-log listeners; safe to call more than once."""
    from timesheet_payroll.models.payroll import PayrollAuditLog

    if not event.contains(PayrollAuditLog, "before_update", _block_audit_update):
        event.listen(PayrollAuditLog, "before_update", _block_audit_update)
    if not event.contains(PayrollAuditLog, "before_delete", _block_audit_delete):
        event.listen(PayrollAuditLog, "before_delete", _block_audit_delete)
