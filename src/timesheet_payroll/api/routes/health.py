"""Health, readiness and liveness endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from timesheet_payroll import __version__
from timesheet_payroll.api.dependencies import DbSession
from timesheet_payroll.models import PayrollRun

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    database: str


async def _payroll_tables_reachable(db: DbSession) -> bool:
    """Whether the payroll schema answers a trivial query."""
    try:
        await db.execute(select(func.count()).select_from(PayrollRun))
    except SQLAlchemyError:
        logger.exception("Payroll tables unreachable")
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report the engine version and database state; always 200."""
    healthy = await _payroll_tables_reachable(db)
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database="healthy" if healthy else "unhealthy",
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """503 until the payroll tables can be queried."""
    if not await _payroll_tables_reachable(db):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
