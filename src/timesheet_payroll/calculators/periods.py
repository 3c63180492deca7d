"""Calendar arithmetic for weekly and monthly pay periods."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


class PayFrequency(str, Enum):
    """Supported pay period frequencies."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


# Weekly pay lands the Friday after a Monday-Sunday week closes.
WEEKLY_PAY_LAG_DAYS = 5
# Monthly pay lands on this day of the following month.
MONTHLY_PAY_DAY = 5


@dataclass(frozen=True)
class PeriodBounds:
    """Resolved boundaries of the pay period containing a reference date."""

    frequency: PayFrequency
    start: date
    end: date
    period_number: int
    pay_date: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def week_bounds_for(day: date) -> PeriodBounds:
    """Monday..Sunday week containing ``day``.

    The period number is the ISO-8601 week of the Monday.
    """
    start = day - timedelta(days=day.weekday())
    end = start + timedelta(days=6)
    return PeriodBounds(
        frequency=PayFrequency.WEEKLY,
        start=start,
        end=end,
        period_number=start.isocalendar()[1],
        pay_date=end + timedelta(days=WEEKLY_PAY_LAG_DAYS),
    )


def month_bounds_for(day: date) -> PeriodBounds:
    """First..last calendar day of the month containing ``day``."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    start = day.replace(day=1)
    end = day.replace(day=last_day)
    next_month = end + timedelta(days=1)
    return PeriodBounds(
        frequency=PayFrequency.MONTHLY,
        start=start,
        end=end,
        period_number=day.month,
        pay_date=next_month.replace(day=MONTHLY_PAY_DAY),
    )


def bounds_for(frequency: str, day: date) -> PeriodBounds:
    """Dispatch to the weekly or monthly resolver."""
    if frequency == PayFrequency.WEEKLY:
        return week_bounds_for(day)
    if frequency == PayFrequency.MONTHLY:
        return month_bounds_for(day)
    raise ValueError(f"Unsupported pay frequency: {frequency!r}")
