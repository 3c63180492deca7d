"""Pay breakdown calculation.

Each bucket's pay is rounded half-up to cents on its own. Gross pay is the
exact sum of those rounded amounts plus bonuses, so gross always equals the
sum of the stored parts and net always equals gross minus deductions.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from timesheet_payroll.calculators.types import PayBreakdown, PayInputs

CENTS = Decimal("0.01")


class PayCalculator:
    """Stateless mapping from hours, rates and deductions to a pay breakdown."""

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round to 2 decimal places (half-up)."""
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    @classmethod
    def calculate(cls, inputs: PayInputs) -> PayBreakdown:
        hours = inputs.hours
        rates = inputs.rates
        rate = rates.hourly_rate

        regular_pay = cls.round_to_cents(hours.regular * rate)
        overtime_pay = cls.round_to_cents(hours.overtime * rate * rates.overtime_multiplier)
        double_overtime_pay = cls.round_to_cents(
            hours.double_overtime * rate * rates.double_overtime_multiplier
        )
        pto_pay = cls.round_to_cents(hours.pto * rate)
        sick_pay = cls.round_to_cents(hours.sick * rate)
        holiday_pay = cls.round_to_cents(hours.holiday * rate * rates.holiday_multiplier)
        bonuses = cls.round_to_cents(inputs.bonuses)

        gross_pay = (
            regular_pay
            + overtime_pay
            + double_overtime_pay
            + pto_pay
            + sick_pay
            + holiday_pay
            + bonuses
        )

        deductions = inputs.deductions
        if deductions.amount is not None:
            total_deductions = cls.round_to_cents(deductions.amount)
            deduction_rate = None
        elif deductions.rate is not None:
            total_deductions = cls.round_to_cents(gross_pay * deductions.rate)
            deduction_rate = deductions.rate
        else:
            total_deductions = cls.round_to_cents(Decimal("0"))
            deduction_rate = None

        return PayBreakdown(
            hours=hours,
            rates=rates,
            regular_pay=regular_pay,
            overtime_pay=overtime_pay,
            double_overtime_pay=double_overtime_pay,
            pto_pay=pto_pay,
            sick_pay=sick_pay,
            holiday_pay=holiday_pay,
            bonuses=bonuses,
            gross_pay=gross_pay,
            deduction_rate=deduction_rate,
            total_deductions=total_deductions,
            net_pay=gross_pay - total_deductions,
        )
