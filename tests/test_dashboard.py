"""Tests for the payroll dashboard read model."""

from datetime import date, timedelta
from decimal import Decimal

from timesheet_payroll.models import ENTRY_STATUSES, PayrollRun
from timesheet_payroll.services.dashboard_service import DashboardService
from timesheet_payroll.services.entry_service import EntryService
from timesheet_payroll.services.timesheet_sync import TimesheetSyncService

from conftest import WEEK_MONDAY


class TestDashboard:
    async def test_empty_dashboard(self, session):
        dashboard = await DashboardService(session).get_dashboard()

        assert dashboard.summary.total_gross_pay == Decimal("0")
        assert dashboard.summary.total_employees == 0
        assert dashboard.status_counts == dict.fromkeys(ENTRY_STATUSES, 0)

    async def test_sums_and_counts(
        self, session, settings, hourly_employee, salaried_employee, add_attendance
    ):
        sync = TimesheetSyncService(session, settings)
        hourly = await add_attendance(hourly_employee, WEEK_MONDAY, "45", "5")
        salaried = await add_attendance(salaried_employee, WEEK_MONDAY, "8")
        hourly_result = await sync.sync_from_approval(hourly.attendance_id)
        await sync.sync_from_approval(salaried.attendance_id)
        await EntryService(session).approve_entry(hourly_result.payroll_entry_id)

        dashboard = await DashboardService(session).get_dashboard()

        summary = dashboard.summary
        assert summary.total_employees == 2
        assert summary.total_gross_pay == Decimal("6187.50")
        assert summary.total_net_pay == Decimal("6187.50")
        assert summary.total_hours == Decimal("45")
        assert summary.regular_hours == Decimal("40")
        assert summary.overtime_hours == Decimal("5")
        assert summary.total_bonuses == Decimal("5000")
        assert dashboard.status_counts["approved"] == 1
        assert dashboard.status_counts["draft"] == 1
        assert dashboard.status_counts["paid"] == 0

    async def test_filters(self, session, settings, hourly_employee, add_attendance):
        sync = TimesheetSyncService(session, settings)
        this_week = await add_attendance(hourly_employee, WEEK_MONDAY, "10")
        next_week = await add_attendance(hourly_employee, WEEK_MONDAY + timedelta(weeks=1), "20")
        result = await sync.sync_from_approval(this_week.attendance_id)
        await sync.sync_from_approval(next_week.attendance_id)
        entry = await EntryService(session).get_entry(result.payroll_entry_id)
        run = await session.get(PayrollRun, entry.payroll_run_id)

        dashboard = DashboardService(session)
        everything = await dashboard.get_dashboard()
        assert everything.summary.total_hours == Decimal("30")

        # weekly pay dates: 2025-03-21 and 2025-03-28
        ranged = await dashboard.get_dashboard(date_from=date(2025, 3, 20), date_to=date(2025, 3, 22))
        assert ranged.summary.total_hours == Decimal("10")

        by_period = await dashboard.get_dashboard(pay_period_id=run.pay_period_id)
        assert by_period.summary.total_hours == Decimal("10")
        assert by_period.summary.total_gross_pay == Decimal("250.00")

        # a single bound does not filter
        open_ended = await dashboard.get_dashboard(date_from=date(2025, 3, 25))
        assert open_ended.summary.total_hours == Decimal("30")
