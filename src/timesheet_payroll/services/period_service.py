"""Lazily created weekly and monthly pay periods."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.calculators.periods import (
    PeriodBounds,
    month_bounds_for,
    week_bounds_for,
)
from timesheet_payroll.models import PayPeriod

logger = logging.getLogger(__name__)


class PeriodService:
    """Resolves the persisted pay period containing a date."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_period(self, bounds: PeriodBounds) -> PayPeriod | None:
        """Live period with exactly these boundaries, if any."""
        result = await self.session.execute(
            select(PayPeriod).where(
                PayPeriod.frequency == bounds.frequency.value,
                PayPeriod.start_date == bounds.start,
                PayPeriod.end_date == bounds.end,
                PayPeriod.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_period(self, bounds: PeriodBounds) -> PayPeriod:
        """Return the live period for ``bounds``, inserting it if absent.

        The insert runs in a savepoint. If a concurrent caller created the
        same period first, the unique index rejects ours and the winner is
        read back instead.
        """
        existing = await self.find_period(bounds)
        if existing is not None:
            return existing

        period = PayPeriod(
            frequency=bounds.frequency.value,
            start_date=bounds.start,
            end_date=bounds.end,
            pay_date=bounds.pay_date,
            period_number=bounds.period_number,
            status="draft",
            approval_workflow="auto_from_timesheet",
            auto_generate_from_timesheets=True,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(period)
        except IntegrityError:
            logger.warning(
                "Lost race creating %s period %s..%s; reading existing row",
                bounds.frequency.value,
                bounds.start,
                bounds.end,
            )
            winner = await self.find_period(bounds)
            if winner is None:
                raise
            return winner

        logger.info(
            "Created %s pay period %s..%s (number %s, pay date %s)",
            bounds.frequency.value,
            bounds.start,
            bounds.end,
            bounds.period_number,
            bounds.pay_date,
        )
        return period

    async def get_or_create_weekly_period(self, day: date) -> PayPeriod:
        return await self.get_or_create_period(week_bounds_for(day))

    async def get_or_create_monthly_period(self, day: date) -> PayPeriod:
        return await self.get_or_create_period(month_bounds_for(day))

    async def get_period(self, pay_period_id) -> PayPeriod | None:
        result = await self.session.execute(
            select(PayPeriod).where(
                PayPeriod.pay_period_id == pay_period_id,
                PayPeriod.is_deleted.is_(False),
            )
        )
        return result.scalar_one_or_none()
