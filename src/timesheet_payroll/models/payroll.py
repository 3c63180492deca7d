"""Pay period, payroll run, entry, linkage, and audit log models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timesheet_payroll.models.base import Base, TimestampMixin, utcnow

JSONType = JSON().with_variant(JSONB(), "postgresql")

HOURS = Numeric(8, 2)
RATE = Numeric(10, 2)
MONEY = Numeric(15, 2)
MULTIPLIER = Numeric(4, 2)

ZERO = Decimal("0")

ENTRY_STATUSES = (
    "draft",
    "pending_approval",
    "approved",
    "processed",
    "paid",
    "failed",
    "cancelled",
)


# ===== Pay Periods =====


class PayPeriod(Base, TimestampMixin):
    """Weekly or monthly pay period, created lazily."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    frequency: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    approval_workflow: Mapped[str] = mapped_column(
        String, nullable=False, default="auto_from_timesheet"
    )
    auto_generate_from_timesheets: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "pay_period_frequency_dates_live_unique",
            "frequency",
            "start_date",
            "end_date",
            unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("is_deleted = 0"),
        ),
        CheckConstraint(
            "frequency IN ('weekly', 'monthly')",
            name="pay_period_frequency_check",
        ),
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
    )

    runs: Mapped[list[PayrollRun]] = relationship(back_populates="pay_period")


# ===== Payroll Runs =====


class PayrollRun(Base, TimestampMixin):
    """The single live batch of entries for a pay period."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    run_number: Mapped[str] = mapped_column(String, nullable=False)
    run_type: Mapped[str] = mapped_column(String, nullable=False, default="regular")
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    total_net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    total_regular_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    total_overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    total_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    total_bonuses: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)

    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "payroll_run_period_live_unique",
            "pay_period_id",
            unique=True,
            postgresql_where=text("NOT is_deleted AND status <> 'cancelled'"),
            sqlite_where=text("is_deleted = 0 AND status <> 'cancelled'"),
        ),
        CheckConstraint(
            "run_type IN ('regular', 'bonus', 'correction')",
            name="payroll_run_type_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'approved', 'processed', 'paid', 'cancelled')",
            name="payroll_run_status_check",
        ),
    )

    pay_period: Mapped[PayPeriod] = relationship(back_populates="runs")


# ===== Payroll Entries =====


class PayrollEntry(Base, TimestampMixin):
    """One employee's computed pay within a run."""

    __tablename__ = "payroll_entry"

    payroll_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    entry_number: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    source_type: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    approval_workflow: Mapped[str] = mapped_column(String, nullable=False, default="manual")
    timesheet_integration_status: Mapped[str | None] = mapped_column(String, nullable=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked_reason: Mapped[str | None] = mapped_column(String, nullable=True)

    # Hours
    regular_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    double_overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    pto_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    sick_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    holiday_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    total_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)

    # Rates
    hourly_rate: Mapped[Decimal] = mapped_column(RATE, nullable=False, default=ZERO)
    overtime_multiplier: Mapped[Decimal] = mapped_column(
        MULTIPLIER, nullable=False, default=Decimal("1.5")
    )
    double_overtime_multiplier: Mapped[Decimal] = mapped_column(
        MULTIPLIER, nullable=False, default=Decimal("2.0")
    )
    holiday_multiplier: Mapped[Decimal] = mapped_column(
        MULTIPLIER, nullable=False, default=Decimal("1.5")
    )

    # Pay breakdown
    regular_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    overtime_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    double_overtime_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    pto_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    sick_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    holiday_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    bonuses: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    deduction_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 4), nullable=True)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=ZERO)

    # Payment
    payment_method: Mapped[str] = mapped_column(
        String, nullable=False, default="direct_deposit"
    )
    check_number: Mapped[str | None] = mapped_column(String, nullable=True)
    scheduled_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    processed_date: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_date: Mapped[datetime | None] = mapped_column(nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index(
            "payroll_entry_run_employee_live_unique",
            "payroll_run_id",
            "employee_id",
            unique=True,
            postgresql_where=text("NOT is_deleted"),
            sqlite_where=text("is_deleted = 0"),
        ),
        CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'processed', "
            "'paid', 'failed', 'cancelled')",
            name="payroll_entry_status_check",
        ),
        CheckConstraint(
            "source_type IN ('manual', 'timesheet_auto')",
            name="payroll_entry_source_type_check",
        ),
        CheckConstraint(
            "payment_method IN ('direct_deposit', 'check', 'cash', 'wire_transfer')",
            name="payroll_entry_payment_method_check",
        ),
    )

    timesheet_links: Mapped[list[PayrollTimesheetEntry]] = relationship(
        back_populates="payroll_entry"
    )


class PayrollTimesheetEntry(Base, TimestampMixin):
    """Links an approved attendance record to the entry that includes it."""

    __tablename__ = "payroll_timesheet_entry"

    payroll_timesheet_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_entry_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_entry.payroll_entry_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    attendance_id: Mapped[UUID] = mapped_column(
        ForeignKey("attendance_record.attendance_id", ondelete="CASCADE"),
        nullable=False,
    )
    hours_included: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    double_overtime_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False, default=ZERO)
    included_in_payroll: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_entry_id",
            "attendance_id",
            name="payroll_timesheet_entry_unique",
        ),
    )

    payroll_entry: Mapped[PayrollEntry] = relationship(back_populates="timesheet_links")


# ===== Audit =====


class PayrollAuditLog(Base):
    """Append-only record of every mutating payroll action."""

    __tablename__ = "payroll_audit_log"

    # Integer key gives a strict insertion order
    audit_id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    reference_type: Mapped[str] = mapped_column(String, nullable=False)
    reference_id: Mapped[UUID] = mapped_column(nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    performed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    is_automated_action: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    automation_source: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("payroll_audit_log_reference_idx", "reference_type", "reference_id"),
    )
