"""Human-readable run and entry numbers.

Numbers look like ``RUN-2025-W07-003``: ISO year and week, and a sequence from
counting the ISO year's rows so far. Two concurrent creations can compute the
same sequence; the number is a display label only and nothing keys on it.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.models import PayrollEntry, PayrollRun


def format_number(prefix: str, day: date, sequence: int) -> str:
    iso_year, week, _ = day.isocalendar()
    return f"{prefix}-{iso_year}-W{week:02d}-{sequence:03d}"


async def _count_since_year_start(session: AsyncSession, column, day: date) -> int:
    # sequence restarts with the ISO year shown in the label
    first_monday = date.fromisocalendar(day.isocalendar()[0], 1, 1)
    year_start = datetime.combine(first_monday, time.min, tzinfo=timezone.utc)
    count = await session.scalar(select(func.count()).where(column >= year_start))
    return count or 0


async def next_run_number(session: AsyncSession, day: date | None = None) -> str:
    day = day or date.today()
    count = await _count_since_year_start(session, PayrollRun.created_at, day)
    return format_number("RUN", day, count + 1)


async def next_entry_number(session: AsyncSession, day: date | None = None) -> str:
    day = day or date.today()
    count = await _count_since_year_start(session, PayrollEntry.created_at, day)
    return format_number("PAY", day, count + 1)
