"""Pytest fixtures for timesheet payroll tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from timesheet_payroll.config import Settings
from timesheet_payroll.database import get_engine, make_session_factory
from timesheet_payroll.models import AttendanceRecord, Base, Employee, Position

# In-memory SQLite with SAVEPOINT support enabled by get_engine()
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Monday of ISO week 11, 2025
WEEK_MONDAY = date(2025, 3, 10)

AttendanceFactory = Callable[..., Awaitable[AttendanceRecord]]


def make_settings(**overrides) -> Settings:
    values = dict(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        default_deduction_rate=None,
        overtime_multiplier=Decimal("1.5"),
        double_overtime_multiplier=Decimal("2.0"),
        holiday_multiplier=Decimal("1.5"),
        default_payment_method="direct_deposit",
    )
    values.update(overrides)
    return Settings(**values)


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory database per test."""
    engine = get_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with make_session_factory(engine)() as session:
        yield session
        await session.rollback()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest_asyncio.fixture
async def hourly_position(session: AsyncSession) -> Position:
    position = Position(name="Technician", pay_type="hourly", pay_rate=Decimal("20.00"))
    session.add(position)
    await session.flush()
    return position


@pytest_asyncio.fixture
async def salaried_position(session: AsyncSession) -> Position:
    position = Position(name="Manager", pay_type="salary", pay_rate=Decimal("5000.00"))
    session.add(position)
    await session.flush()
    return position


@pytest_asyncio.fixture
async def hourly_employee(session: AsyncSession, hourly_position: Position) -> Employee:
    """Hourly employee with a $25 rate override on a $20 position."""
    employee = Employee(
        employee_number="EMP-001",
        full_name="Alex Rivera",
        position_id=hourly_position.position_id,
        hourly_rate=Decimal("25.00"),
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest_asyncio.fixture
async def salaried_employee(session: AsyncSession, salaried_position: Position) -> Employee:
    employee = Employee(
        employee_number="EMP-002",
        full_name="Sam Okafor",
        position_id=salaried_position.position_id,
    )
    session.add(employee)
    await session.flush()
    return employee


@pytest.fixture
def add_attendance(session: AsyncSession) -> AttendanceFactory:
    """Factory inserting an attendance record."""

    async def _add(
        employee: Employee,
        work_date: date,
        total_hours: str,
        overtime_hours: str = "0",
        status: str = "approved",
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            employee_id=employee.employee_id,
            work_date=work_date,
            total_hours=Decimal(total_hours),
            overtime_hours=Decimal(overtime_hours),
            status=status,
        )
        session.add(record)
        await session.flush()
        return record

    return _add
