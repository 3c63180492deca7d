"""API endpoint tests against the in-memory database."""

from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from timesheet_payroll import __version__
from timesheet_payroll.api.app import create_app
from timesheet_payroll.api.dependencies import get_db_session
from timesheet_payroll.services.period_service import PeriodService

from conftest import WEEK_MONDAY, make_settings

ACTOR = {"X-Actor-Id": "user-42"}


@pytest_asyncio.fixture
async def client(session, monkeypatch):
    """HTTP client sharing the test session."""
    monkeypatch.setattr(
        "timesheet_payroll.services.timesheet_sync.get_settings", lambda: make_settings()
    )
    app = create_app()

    async def override_session():
        yield session

    app.dependency_overrides[get_db_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def period(session):
    return await PeriodService(session).get_or_create_weekly_period(WEEK_MONDAY)


@pytest_asyncio.fixture
async def run_id(client, period) -> str:
    response = await client.post(
        "/api/v1/payroll/runs",
        headers=ACTOR,
        json={"pay_period_id": str(period.pay_period_id)},
    )
    assert response.status_code == 201
    return response.json()["payroll_run_id"]


@pytest_asyncio.fixture
async def entry_id(client, run_id, hourly_employee) -> str:
    response = await client.post(
        "/api/v1/payroll/entries",
        headers=ACTOR,
        json={
            "payroll_run_id": run_id,
            "employee_id": str(hourly_employee.employee_id),
            "hourly_rate": "25",
            "regular_hours": "40",
            "overtime_hours": "5",
        },
    )
    assert response.status_code == 201
    return response.json()["payroll_entry_id"]


class UnreachableSession:
    """Session stand-in whose database is down."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT count(*)", {}, ConnectionRefusedError("db down"))


class TestHealthEndpoints:
    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "healthy"
        assert body["version"] == __version__

    async def test_readiness_and_liveness(self, client):
        assert (await client.get("/ready")).json()["status"] == "ready"
        assert (await client.get("/live")).json()["status"] == "alive"

    async def test_database_down(self):
        app = create_app()

        async def broken_session():
            yield UnreachableSession()

        app.dependency_overrides[get_db_session] = broken_session
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            health = await client.get("/health")
            ready = await client.get("/ready")
            live = await client.get("/live")

        assert health.status_code == 200
        assert health.json()["status"] == "degraded"
        assert health.json()["database"] == "unhealthy"
        assert ready.status_code == 503
        assert ready.json() == {"status": "unavailable"}
        assert live.status_code == 200


class TestRunEndpoints:
    async def test_duplicate_run_is_400_with_code(self, client, period, run_id):
        response = await client.post(
            "/api/v1/payroll/runs", json={"pay_period_id": str(period.pay_period_id)}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_RUN"

    async def test_run_for_unknown_period_is_404(self, client):
        response = await client.post("/api/v1/payroll/runs", json={"pay_period_id": str(uuid4())})
        assert response.status_code == 404

    async def test_process_locks_entries(self, client, run_id, entry_id):
        response = await client.post(f"/api/v1/payroll/runs/{run_id}/process", headers=ACTOR)
        assert response.status_code == 200
        run = response.json()
        assert run["status"] == "processed"
        assert run["processed_by"] == "user-42"
        assert Decimal(run["total_gross_pay"]) == Decimal("1187.50")

        response = await client.put(f"/api/v1/payroll/entries/{entry_id}", json={"bonuses": "10"})
        assert response.status_code == 400
        assert response.json()["code"] == "ENTRY_LOCKED"

        response = await client.delete(f"/api/v1/payroll/entries/{entry_id}")
        assert response.json()["code"] == "ENTRY_LOCKED"

        response = await client.post(f"/api/v1/payroll/runs/{run_id}/process")
        assert response.json()["code"] == "ALREADY_PROCESSED"

    async def test_list_runs(self, client, run_id):
        response = await client.get("/api/v1/payroll/runs", params={"status": "draft"})
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["items"][0]["payroll_run_id"] == run_id


class TestEntryEndpoints:
    async def test_create_and_get(self, client, entry_id):
        response = await client.get(f"/api/v1/payroll/entries/{entry_id}")
        assert response.status_code == 200
        entry = response.json()
        assert Decimal(entry["gross_pay"]) == Decimal("1187.50")
        assert entry["created_by"] == "user-42"

    async def test_missing_entry_is_404(self, client):
        response = await client.get(f"/api/v1/payroll/entries/{uuid4()}")
        assert response.status_code == 404

    async def test_duplicate_entry(self, client, run_id, entry_id, hourly_employee):
        response = await client.post(
            "/api/v1/payroll/entries",
            json={"payroll_run_id": run_id, "employee_id": str(hourly_employee.employee_id)},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_ENTRY"

    async def test_hours_out_of_range_rejected(self, client, run_id, hourly_employee):
        response = await client.post(
            "/api/v1/payroll/entries",
            json={
                "payroll_run_id": run_id,
                "employee_id": str(hourly_employee.employee_id),
                "regular_hours": "169",
            },
        )
        assert response.status_code == 422

    async def test_update_then_approve_then_reject(self, client, entry_id):
        response = await client.put(
            f"/api/v1/payroll/entries/{entry_id}", json={"deduction_rate": "0.1"}
        )
        assert Decimal(response.json()["total_deductions"]) == Decimal("118.75")

        response = await client.post(f"/api/v1/payroll/entries/{entry_id}/approve", json={"notes": "ok"})
        assert response.json()["status"] == "approved"

        response = await client.post(f"/api/v1/payroll/entries/{entry_id}/approve")
        assert response.status_code == 400
        assert response.json()["code"] == "ALREADY_APPROVED"

        response = await client.post(
            f"/api/v1/payroll/entries/{entry_id}/reject", json={"reason": "wrong rate"}
        )
        assert response.json()["status"] == "draft"
        assert response.json()["notes"] == "wrong rate"

    async def test_reject_requires_reason(self, client, entry_id):
        response = await client.post(f"/api/v1/payroll/entries/{entry_id}/reject", json={"reason": ""})
        assert response.status_code == 422

    async def test_delete_hides_entry(self, client, entry_id):
        response = await client.delete(f"/api/v1/payroll/entries/{entry_id}")
        assert response.status_code == 204
        assert (await client.get(f"/api/v1/payroll/entries/{entry_id}")).status_code == 404

    async def test_audit_trail(self, client, entry_id):
        await client.post(f"/api/v1/payroll/entries/{entry_id}/approve", headers=ACTOR)

        response = await client.get(f"/api/v1/payroll/audit/payroll_entry/{entry_id}")
        rows = response.json()
        assert [r["action"] for r in rows] == ["created", "approved"]
        assert all(r["performed_by"] == "user-42" for r in rows)


class TestSyncEndpoints:
    async def test_sync_and_links(self, client, hourly_employee, add_attendance):
        record = await add_attendance(hourly_employee, WEEK_MONDAY, "45", "5")

        response = await client.post(f"/api/v1/payroll/sync/attendance/{record.attendance_id}")
        body = response.json()
        assert response.status_code == 200
        assert body["synced"] is True
        assert body["created"] is True

        entry_id = body["payroll_entry_id"]
        links = (await client.get(f"/api/v1/payroll/entries/{entry_id}/timesheets")).json()
        assert [link["attendance_id"] for link in links] == [str(record.attendance_id)]

        dashboard = (await client.get("/api/v1/payroll/dashboard")).json()
        assert Decimal(dashboard["summary"]["total_gross_pay"]) == Decimal("1187.50")
        assert dashboard["status_counts"]["draft"] == 1

    async def test_skipped_sync_is_not_an_error(self, client):
        response = await client.post(f"/api/v1/payroll/sync/attendance/{uuid4()}")
        assert response.status_code == 200
        assert response.json() == {
            "synced": False,
            "reason": "Attendance record not found",
            "payroll_entry_id": None,
            "created": False,
        }

    async def test_recalc(self, client, hourly_employee):
        response = await client.post(
            "/api/v1/payroll/sync/recalc",
            json={"employee_id": str(hourly_employee.employee_id), "period_date": "2025-03-12"},
        )
        assert response.status_code == 200
        assert response.json()["synced"] is False
