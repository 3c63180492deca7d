"""Database-level integrity hooks."""

from timesheet_payroll.db.immutability import register_immutability_listeners

__all__ = ["register_immutability_listeners"]
