"""ORM models."""

from timesheet_payroll.db.immutability import register_immutability_listeners
from timesheet_payroll.models.base import Base, TimestampMixin
from timesheet_payroll.models.payroll import (
    ENTRY_STATUSES,
    PayPeriod,
    PayrollAuditLog,
    PayrollEntry,
    PayrollRun,
    PayrollTimesheetEntry,
)
from timesheet_payroll.models.workforce import AttendanceRecord, Employee, Position

__all__ = [
    "AttendanceRecord",
    "Base",
    "ENTRY_STATUSES",
    "Employee",
    "PayPeriod",
    "PayrollAuditLog",
    "PayrollEntry",
    "PayrollRun",
    "PayrollTimesheetEntry",
    "Position",
    "TimestampMixin",
]


# Audit rows are append-only from the moment the models exist
register_immutability_listeners()
