"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

PaymentMethod = Literal["direct_deposit", "check", "cash", "wire_transfer"]
RunType = Literal["regular", "bonus", "correction"]

Hours = Annotated[Decimal, Field(ge=0, le=168)]


class ErrorResponse(BaseModel):
    """Error body returned for structured payroll errors."""

    detail: str
    code: str | None = None


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


# ============================================================================
# Payroll entry schemas
# ============================================================================


class EntryCreate(BaseModel):
    """Schema for creating a manual payroll entry."""

    payroll_run_id: UUID
    employee_id: UUID
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    regular_hours: Hours = Decimal("0")
    overtime_hours: Hours = Decimal("0")
    double_overtime_hours: Hours = Decimal("0")
    pto_hours: Hours = Decimal("0")
    sick_hours: Hours = Decimal("0")
    holiday_hours: Hours = Decimal("0")
    overtime_multiplier: Decimal = Field(default=Decimal("1.5"), gt=0)
    double_overtime_multiplier: Decimal = Field(default=Decimal("2.0"), gt=0)
    holiday_multiplier: Decimal = Field(default=Decimal("1.5"), gt=0)
    bonuses: Decimal = Field(default=Decimal("0"), ge=0)
    total_deductions: Decimal | None = Field(default=None, ge=0)
    deduction_rate: Decimal | None = Field(default=None, ge=0, le=1)
    payment_method: PaymentMethod = "direct_deposit"
    check_number: str | None = None
    scheduled_date: date | None = None
    notes: str | None = Field(default=None, max_length=1000)


class EntryUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    hourly_rate: Decimal | None = Field(default=None, ge=0)
    regular_hours: Hours | None = None
    overtime_hours: Hours | None = None
    double_overtime_hours: Hours | None = None
    pto_hours: Hours | None = None
    sick_hours: Hours | None = None
    holiday_hours: Hours | None = None
    overtime_multiplier: Decimal | None = Field(default=None, gt=0)
    double_overtime_multiplier: Decimal | None = Field(default=None, gt=0)
    holiday_multiplier: Decimal | None = Field(default=None, gt=0)
    bonuses: Decimal | None = Field(default=None, ge=0)
    total_deductions: Decimal | None = Field(default=None, ge=0)
    deduction_rate: Decimal | None = Field(default=None, ge=0, le=1)
    payment_method: PaymentMethod | None = None
    check_number: str | None = None
    scheduled_date: date | None = None
    notes: str | None = Field(default=None, max_length=1000)


class ApproveRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=500)


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class LockRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=200)


class EntryResponse(BaseModel):
    """Schema for payroll entry response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_entry_id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    entry_number: str
    status: str
    source_type: str
    approval_workflow: str
    timesheet_integration_status: str | None = None
    is_locked: bool
    locked_reason: str | None = None
    regular_hours: Decimal
    overtime_hours: Decimal
    double_overtime_hours: Decimal
    pto_hours: Decimal
    sick_hours: Decimal
    holiday_hours: Decimal
    total_hours: Decimal
    hourly_rate: Decimal
    overtime_multiplier: Decimal
    double_overtime_multiplier: Decimal
    holiday_multiplier: Decimal
    regular_pay: Decimal
    overtime_pay: Decimal
    double_overtime_pay: Decimal
    pto_pay: Decimal
    sick_pay: Decimal
    holiday_pay: Decimal
    bonuses: Decimal
    gross_pay: Decimal
    deduction_rate: Decimal | None = None
    total_deductions: Decimal
    net_pay: Decimal
    payment_method: str
    check_number: str | None = None
    scheduled_date: date | None = None
    processed_date: datetime | None = None
    paid_date: datetime | None = None
    processed_by: str | None = None
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class EntryListResponse(BaseModel):
    items: list[EntryResponse]
    pagination: PaginationMeta


class TimesheetLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attendance_id: UUID
    hours_included: Decimal
    overtime_hours: Decimal
    double_overtime_hours: Decimal
    included_in_payroll: bool


# ============================================================================
# Payroll run schemas
# ============================================================================


class RunCreate(BaseModel):
    """Schema for creating a payroll run."""

    pay_period_id: UUID
    run_type: RunType = "regular"
    notes: str | None = Field(default=None, max_length=1000)


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class RunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    pay_period_id: UUID
    run_number: str
    run_type: str
    status: str
    total_employees: int
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    total_hours: Decimal
    total_bonuses: Decimal
    calculated_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    processed_at: datetime | None = None
    processed_by: str | None = None
    paid_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class RunListResponse(BaseModel):
    items: list[RunResponse]
    pagination: PaginationMeta


# ============================================================================
# Sync, dashboard and audit schemas
# ============================================================================


class RecalcRequest(BaseModel):
    employee_id: UUID
    period_date: date


class SyncResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    synced: bool
    reason: str | None = None
    payroll_entry_id: UUID | None = None
    created: bool = False


class DashboardSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_net_pay: Decimal
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_employees: int
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    double_overtime_hours: Decimal
    pto_hours: Decimal
    sick_hours: Decimal
    holiday_hours: Decimal
    total_bonuses: Decimal


class DashboardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    summary: DashboardSummaryResponse
    status_counts: dict[str, int]


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: int
    reference_type: str
    reference_id: UUID
    action: str
    description: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    performed_by: str | None = None
    is_automated_action: bool
    automation_source: str | None = None
    created_at: datetime
