"""Tests for reconciling payroll entries with approved attendance."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from timesheet_payroll.models import (
    Employee,
    PayPeriod,
    PayrollEntry,
    PayrollRun,
    PayrollTimesheetEntry,
    Position,
)
from timesheet_payroll.services.audit_service import AuditService
from timesheet_payroll.services.entry_service import EntryService
from timesheet_payroll.services.pay_run_service import PayRunService
from timesheet_payroll.services.timesheet_sync import TimesheetSyncService

from conftest import WEEK_MONDAY, make_settings


@pytest.fixture
def sync(session, settings):
    return TimesheetSyncService(session, settings)


async def link_ids(session, entry_id):
    links = await EntryService(session).list_timesheet_links(entry_id)
    return {link.attendance_id for link in links}


async def count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


class TestHourlyScenario:
    """Employee at $25/hour with two approved records in one week."""

    @pytest_asyncio.fixture
    async def records(self, hourly_employee, add_attendance):
        first = await add_attendance(hourly_employee, WEEK_MONDAY, "38")
        second = await add_attendance(hourly_employee, WEEK_MONDAY + timedelta(days=2), "7", "5")
        return first, second

    async def test_full_week_sync(self, session, sync, records):
        first, second = records
        await sync.sync_from_approval(first.attendance_id)
        result = await sync.sync_from_approval(second.attendance_id)

        assert result.synced is True
        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.regular_hours == Decimal("40")
        assert entry.overtime_hours == Decimal("5")
        assert entry.total_hours == Decimal("45")
        assert entry.regular_pay == Decimal("1000.00")
        assert entry.overtime_pay == Decimal("187.50")
        assert entry.gross_pay == Decimal("1187.50")
        assert entry.total_deductions == Decimal("0.00")
        assert entry.net_pay == Decimal("1187.50")
        assert entry.hourly_rate == Decimal("25.00")
        assert await link_ids(session, entry.payroll_entry_id) == {
            first.attendance_id,
            second.attendance_id,
        }

    async def test_auto_entry_tags(self, session, sync, records):
        result = await sync.sync_from_approval(records[0].attendance_id)
        entry = await EntryService(session).get_entry(result.payroll_entry_id)

        assert result.created is True
        assert entry.status == "draft"
        assert entry.source_type == "timesheet_auto"
        assert entry.approval_workflow == "auto_from_timesheet"
        assert entry.timesheet_integration_status == "auto_generated"
        assert entry.payment_method == "direct_deposit"
        assert entry.scheduled_date == date(2025, 3, 21)

    async def test_rejection_recomputes_and_drops_stale_link(self, session, sync, records):
        first, second = records
        await sync.sync_from_approval(first.attendance_id)
        await sync.sync_from_approval(second.attendance_id)

        second.status = "rejected"
        await session.flush()
        result = await sync.recalc_for_rejection(second.employee_id, second.work_date)

        assert result.synced is True
        assert result.created is False
        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.regular_hours == Decimal("38")
        assert entry.overtime_hours == Decimal("0")
        assert entry.overtime_pay == Decimal("0.00")
        assert entry.gross_pay == Decimal("950.00")
        assert await link_ids(session, entry.payroll_entry_id) == {first.attendance_id}

    async def test_sync_is_idempotent(self, session, sync, records):
        first, second = records
        await sync.sync_from_approval(first.attendance_id)
        once = await sync.sync_from_approval(second.attendance_id)
        entry = await EntryService(session).get_entry(once.payroll_entry_id)
        snapshot = {k: v for k, v in entry.to_snapshot().items() if k != "updated_at"}

        twice = await sync.sync_from_approval(second.attendance_id)
        again = await sync.sync_from_approval(first.attendance_id)

        assert once.payroll_entry_id == twice.payroll_entry_id == again.payroll_entry_id
        entry = await EntryService(session).get_entry(once.payroll_entry_id)
        assert {k: v for k, v in entry.to_snapshot().items() if k != "updated_at"} == snapshot
        assert await count(session, PayrollEntry) == 1
        assert await count(session, PayrollTimesheetEntry) == 2
        assert await count(session, PayrollRun) == 1
        assert await count(session, PayPeriod) == 1

    async def test_order_of_events_does_not_matter(self, session, sync, records):
        first, second = records
        # approve second first, reject it, approve it again
        await sync.sync_from_approval(second.attendance_id)
        second.status = "rejected"
        await session.flush()
        await sync.recalc_for_rejection(second.employee_id, second.work_date)
        second.status = "approved"
        await session.flush()
        await sync.sync_from_approval(second.attendance_id)
        result = await sync.sync_from_approval(first.attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.gross_pay == Decimal("1187.50")
        assert await count(session, PayrollTimesheetEntry) == 2

    async def test_records_outside_the_week_ignored(self, session, sync, hourly_employee, add_attendance, records):
        await add_attendance(hourly_employee, WEEK_MONDAY - timedelta(days=1), "9")
        await add_attendance(hourly_employee, WEEK_MONDAY + timedelta(days=3), "8", status="pending")

        result = await sync.sync_from_approval(records[0].attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.total_hours == Decimal("45")

    async def test_sync_audit_is_automated(self, session, sync, hourly_employee, add_attendance):
        first = await add_attendance(hourly_employee, WEEK_MONDAY, "38")
        second = await add_attendance(
            hourly_employee, WEEK_MONDAY + timedelta(days=2), "7", "5", status="pending"
        )
        result = await sync.sync_from_approval(first.attendance_id)
        second.status = "approved"
        await session.flush()
        await sync.sync_from_approval(second.attendance_id)

        rows = await AuditService(session).list_for("payroll_entry", result.payroll_entry_id)
        assert [r.action for r in rows] == ["created", "updated"]
        assert all(r.is_automated_action for r in rows)
        assert all(r.automation_source == "timesheet_integration" for r in rows)
        assert rows[1].old_values["gross_pay"] == "950.00"
        assert rows[1].new_values["gross_pay"] == "1187.50"
        assert rows[1].old_values["regular_hours"] == "38.00"
        assert rows[1].new_values["overtime_hours"] == "5.00"

    async def test_repeat_sync_audits_no_changes(self, session, sync, records):
        first, second = records
        await sync.sync_from_approval(first.attendance_id)
        result = await sync.sync_from_approval(second.attendance_id)

        rows = await AuditService(session).list_for("payroll_entry", result.payroll_entry_id)
        before, after = rows[-1].old_values, rows[-1].new_values
        changed = {k for k in after if k != "updated_at" and before[k] != after[k]}
        assert changed == set()

    async def test_lost_race_updates_winner(self, session, sync, records, monkeypatch):
        first, second = records
        winner = await sync.sync_from_approval(first.attendance_id)

        real_find = sync._find_entry
        calls = []

        async def find_misses_once(*args):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await real_find(*args)

        monkeypatch.setattr(sync, "_find_entry", find_misses_once)
        result = await sync.sync_from_approval(second.attendance_id)

        assert result.synced is True
        assert result.created is False
        assert result.payroll_entry_id == winner.payroll_entry_id
        assert len(calls) == 2
        assert await count(session, PayrollEntry) == 1
        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.gross_pay == Decimal("1187.50")

    async def test_default_deduction_rate_applied(self, session, records):
        sync = TimesheetSyncService(session, make_settings(default_deduction_rate=Decimal("0.2")))

        await sync.sync_from_approval(records[0].attendance_id)
        result = await sync.sync_from_approval(records[1].attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.total_deductions == Decimal("237.50")
        assert entry.net_pay == Decimal("950.00")


class TestSkips:
    async def test_missing_record(self, sync):
        result = await sync.sync_from_approval(uuid4())
        assert result.synced is False
        assert result.reason == "Attendance record not found"

    async def test_unapproved_record(self, sync, hourly_employee, add_attendance):
        record = await add_attendance(hourly_employee, WEEK_MONDAY, "8", status="pending")

        result = await sync.sync_from_approval(record.attendance_id)

        assert result.synced is False
        assert "not approved" in result.reason

    async def test_no_hourly_rate(self, session, sync, add_attendance):
        position = Position(name="Volunteer", pay_type="hourly", pay_rate=None)
        session.add(position)
        await session.flush()
        employee = Employee(
            employee_number="EMP-404", full_name="No Rate", position_id=position.position_id
        )
        session.add(employee)
        await session.flush()
        record = await add_attendance(employee, WEEK_MONDAY, "8")

        result = await sync.sync_from_approval(record.attendance_id)

        assert result.synced is False
        assert result.reason == "No hourly rate configured for employee"
        assert await count(session, PayPeriod) == 0

    async def test_recalc_without_entry_is_noop(self, session, sync, hourly_employee):
        result = await sync.recalc_for_rejection(hourly_employee.employee_id, WEEK_MONDAY)

        assert result.synced is False
        assert await count(session, PayrollRun) == 0

    async def test_recalc_for_salaried_is_noop(self, sync, salaried_employee):
        result = await sync.recalc_for_rejection(salaried_employee.employee_id, WEEK_MONDAY)
        assert result.synced is False

    async def test_locked_entry_not_touched(self, session, sync, hourly_employee, add_attendance):
        first = await add_attendance(hourly_employee, WEEK_MONDAY, "8")
        result = await sync.sync_from_approval(first.attendance_id)
        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        await PayRunService(session).process_run(entry.payroll_run_id)

        late = await add_attendance(hourly_employee, WEEK_MONDAY + timedelta(days=1), "8")
        skipped = await sync.sync_from_approval(late.attendance_id)

        assert skipped.synced is False
        assert skipped.reason == "Payroll entry is locked"
        assert entry.total_hours == Decimal("8")


class TestClassification:
    async def test_position_rate_used_without_override(self, session, sync, hourly_position, add_attendance):
        employee = Employee(
            employee_number="EMP-010", full_name="Pos Rate", position_id=hourly_position.position_id
        )
        session.add(employee)
        await session.flush()
        record = await add_attendance(employee, WEEK_MONDAY, "10")

        result = await sync.sync_from_approval(record.attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.hourly_rate == Decimal("20.00")
        assert entry.gross_pay == Decimal("200.00")

    async def test_employee_pay_type_override(self, session, sync, salaried_position, add_attendance):
        """An hourly override on a salaried position pays by the hour."""
        employee = Employee(
            employee_number="EMP-011",
            full_name="Override",
            position_id=salaried_position.position_id,
            pay_type="hourly",
            hourly_rate=Decimal("30"),
        )
        session.add(employee)
        await session.flush()
        record = await add_attendance(employee, WEEK_MONDAY, "10")

        result = await sync.sync_from_approval(record.attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.gross_pay == Decimal("300.00")

    async def test_salaried_uses_monthly_period_and_fixed_amount(
        self, session, sync, salaried_employee, add_attendance
    ):
        first = await add_attendance(salaried_employee, date(2025, 3, 3), "8")
        second = await add_attendance(salaried_employee, date(2025, 3, 20), "9", "1")

        await sync.sync_from_approval(first.attendance_id)
        result = await sync.sync_from_approval(second.attendance_id)

        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        assert entry.total_hours == Decimal("0")
        assert entry.bonuses == Decimal("5000.00")
        assert entry.gross_pay == Decimal("5000.00")
        assert entry.scheduled_date == date(2025, 4, 5)
        period = await session.get(PayPeriod, (await session.get(PayrollRun, entry.payroll_run_id)).pay_period_id)
        assert period.frequency == "monthly"
        assert period.start_date == date(2025, 3, 1)
        assert await link_ids(session, entry.payroll_entry_id) == {
            first.attendance_id,
            second.attendance_id,
        }

    async def test_salary_override_on_hourly_position_skipped(
        self, session, sync, hourly_position, add_attendance
    ):
        """A position's hourly rate is never paid out as a monthly salary."""
        employee = Employee(
            employee_number="EMP-012",
            full_name="Misfiled",
            position_id=hourly_position.position_id,
            pay_type="salary",
        )
        session.add(employee)
        await session.flush()
        record = await add_attendance(employee, WEEK_MONDAY, "8")

        result = await sync.sync_from_approval(record.attendance_id)

        assert result.synced is False
        assert "salaried position" in result.reason
        assert await count(session, PayrollEntry) == 0
        assert await count(session, PayPeriod) == 0

    async def test_pay_type_is_trimmed_and_lowercased(self, session, sync, salaried_position):
        employee = Employee(
            employee_number="EMP-013",
            full_name="Spaced Out",
            position_id=salaried_position.position_id,
            pay_type="  Salary ",
        )
        session.add(employee)
        await session.flush()

        classification = await sync.resolve_classification(employee)

        assert classification.salaried is True
        assert classification.amount == Decimal("5000.00")
