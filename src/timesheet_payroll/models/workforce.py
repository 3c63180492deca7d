"""Employee directory and attendance records read by the payroll engine.

These tables belong to neighbouring modules of the business backend. The
payroll engine only reads them; tests and fixtures populate them directly.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from timesheet_payroll.models.base import Base, TimestampMixin


class Position(Base, TimestampMixin):
    """Job position with its default pay classification."""

    __tablename__ = "position"

    position_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    pay_type: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    pay_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "pay_type IN ('hourly', 'salary', 'commission', 'contract')",
            name="position_pay_type_check",
        ),
    )


class Employee(Base, TimestampMixin):
    """Employee with optional pay overrides."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    position_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("position.position_id", ondelete="SET NULL"),
        nullable=True,
    )
    pay_type: Mapped[str | None] = mapped_column(String, nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class AttendanceRecord(Base, TimestampMixin):
    """One day of attendance for an employee."""

    __tablename__ = "attendance_record"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=Decimal("0"))
    overtime_hours: Mapped[Decimal] = mapped_column(
        Numeric(8, 2), nullable=False, default=Decimal("0")
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="attendance_status_check",
        ),
    )
