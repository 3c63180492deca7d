"""Payroll services."""
