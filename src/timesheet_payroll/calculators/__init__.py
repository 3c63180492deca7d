"""Pure payroll calculations: period boundaries and pay breakdowns."""

from timesheet_payroll.calculators.pay_calculator import PayCalculator
from timesheet_payroll.calculators.periods import (
    PeriodBounds,
    month_bounds_for,
    week_bounds_for,
)
from timesheet_payroll.calculators.types import (
    DeductionSpec,
    HourBuckets,
    PayBreakdown,
    PayInputs,
    PayRates,
)

__all__ = [
    "DeductionSpec",
    "HourBuckets",
    "PayBreakdown",
    "PayCalculator",
    "PayInputs",
    "PayRates",
    "PeriodBounds",
    "month_bounds_for",
    "week_bounds_for",
]
