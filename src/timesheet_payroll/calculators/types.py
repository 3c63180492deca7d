"""Type definitions for the pay calculation."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

ZERO = Decimal("0")

DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.5")
DEFAULT_DOUBLE_OVERTIME_MULTIPLIER = Decimal("2.0")
DEFAULT_HOLIDAY_MULTIPLIER = Decimal("1.5")


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps float inputs like 0.1 from dragging in binary noise
    return Decimal(str(value))


@dataclass(frozen=True)
class HourBuckets:
    """Compensated hours by category."""

    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    double_overtime: Decimal = ZERO
    pto: Decimal = ZERO
    sick: Decimal = ZERO
    holiday: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("regular", "overtime", "double_overtime", "pto", "sick", "holiday"):
            value = _as_decimal(getattr(self, name))
            if value < 0:
                raise ValueError(f"{name} hours cannot be negative: {value}")
            object.__setattr__(self, name, value)

    @property
    def total(self) -> Decimal:
        return (
            self.regular
            + self.overtime
            + self.double_overtime
            + self.pto
            + self.sick
            + self.holiday
        )


@dataclass(frozen=True)
class PayRates:
    """Hourly rate and premium multipliers."""

    hourly_rate: Decimal = ZERO
    overtime_multiplier: Decimal = DEFAULT_OVERTIME_MULTIPLIER
    double_overtime_multiplier: Decimal = DEFAULT_DOUBLE_OVERTIME_MULTIPLIER
    holiday_multiplier: Decimal = DEFAULT_HOLIDAY_MULTIPLIER

    def __post_init__(self) -> None:
        rate = _as_decimal(self.hourly_rate)
        if rate < 0:
            raise ValueError(f"hourly_rate cannot be negative: {rate}")
        object.__setattr__(self, "hourly_rate", rate)
        for name in ("overtime_multiplier", "double_overtime_multiplier", "holiday_multiplier"):
            value = _as_decimal(getattr(self, name))
            if value <= 0:
                raise ValueError(f"{name} must be positive: {value}")
            object.__setattr__(self, name, value)


@dataclass(frozen=True)
class DeductionSpec:
    """How to derive total deductions.

    An explicit ``amount`` wins over ``rate``. With neither, deductions are zero.
    """

    amount: Decimal | None = None
    rate: Decimal | None = None

    def __post_init__(self) -> None:
        if self.amount is not None:
            amount = _as_decimal(self.amount)
            if amount < 0:
                raise ValueError(f"Deduction amount cannot be negative: {amount}")
            object.__setattr__(self, "amount", amount)
        if self.rate is not None:
            rate = _as_decimal(self.rate)
            if rate < 0 or rate > 1:
                raise ValueError(f"Deduction rate must be between 0 and 1: {rate}")
            object.__setattr__(self, "rate", rate)


@dataclass(frozen=True)
class PayInputs:
    """Complete input to a pay calculation."""

    hours: HourBuckets = field(default_factory=HourBuckets)
    rates: PayRates = field(default_factory=PayRates)
    bonuses: Decimal = ZERO
    deductions: DeductionSpec = field(default_factory=DeductionSpec)

    def __post_init__(self) -> None:
        bonuses = _as_decimal(self.bonuses)
        if bonuses < 0:
            raise ValueError(f"Bonuses cannot be negative: {bonuses}")
        object.__setattr__(self, "bonuses", bonuses)


@dataclass(frozen=True)
class PayBreakdown:
    """Result of a pay calculation; all money values are rounded to cents."""

    hours: HourBuckets
    rates: PayRates
    regular_pay: Decimal
    overtime_pay: Decimal
    double_overtime_pay: Decimal
    pto_pay: Decimal
    sick_pay: Decimal
    holiday_pay: Decimal
    bonuses: Decimal
    gross_pay: Decimal
    deduction_rate: Decimal | None
    total_deductions: Decimal
    net_pay: Decimal

    @property
    def total_hours(self) -> Decimal:
        return self.hours.total

    def to_entry_values(self) -> dict[str, Any]:
        """Column values for a payroll entry row."""
        return {
            "regular_hours": self.hours.regular,
            "overtime_hours": self.hours.overtime,
            "double_overtime_hours": self.hours.double_overtime,
            "pto_hours": self.hours.pto,
            "sick_hours": self.hours.sick,
            "holiday_hours": self.hours.holiday,
            "total_hours": self.total_hours,
            "hourly_rate": self.rates.hourly_rate,
            "overtime_multiplier": self.rates.overtime_multiplier,
            "double_overtime_multiplier": self.rates.double_overtime_multiplier,
            "holiday_multiplier": self.rates.holiday_multiplier,
            "regular_pay": self.regular_pay,
            "overtime_pay": self.overtime_pay,
            "double_overtime_pay": self.double_overtime_pay,
            "pto_pay": self.pto_pay,
            "sick_pay": self.sick_pay,
            "holiday_pay": self.holiday_pay,
            "bonuses": self.bonuses,
            "gross_pay": self.gross_pay,
            "deduction_rate": self.deduction_rate,
            "total_deductions": self.total_deductions,
            "net_pay": self.net_pay,
        }
