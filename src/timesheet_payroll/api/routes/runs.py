"""Payroll run API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from timesheet_payroll.api.dependencies import ActorId, DbSession
from timesheet_payroll.api.schemas import (
    CancelRequest,
    ErrorResponse,
    PaginationMeta,
    RunCreate,
    RunListResponse,
    RunResponse,
)
from timesheet_payroll.models import PayrollRun
from timesheet_payroll.services.pay_run_service import PayRunService, RunFilters
from timesheet_payroll.services.period_service import PeriodService

router = APIRouter(prefix="/payroll/runs", tags=["payroll-runs"])


def _found(run: PayrollRun | None, run_id: UUID) -> RunResponse:
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payroll run {run_id} not found",
        )
    return RunResponse.model_validate(run)


@router.get("", response_model=RunListResponse)
async def list_runs(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    search: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    pay_period_id: UUID | None = None,
) -> RunListResponse:
    result = await PayRunService(db).list_runs(
        page,
        limit,
        RunFilters(search=search, status=status_filter, pay_period_id=pay_period_id),
    )
    return RunListResponse(
        items=[RunResponse.model_validate(r) for r in result.items],
        pagination=PaginationMeta(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.post(
    "",
    response_model=RunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_run(db: DbSession, actor: ActorId, payload: RunCreate) -> RunResponse:
    """Create a draft run for a period that has none."""
    if await PeriodService(db).get_period(payload.pay_period_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Pay period {payload.pay_period_id} not found",
        )
    run = await PayRunService(db).create_run(
        payload.pay_period_id, payload.run_type, payload.notes, actor
    )
    return RunResponse.model_validate(run)


@router.get(
    "/{run_id}",
    response_model=RunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(db: DbSession, run_id: Annotated[UUID, Path()]) -> RunResponse:
    return _found(await PayRunService(db).get_run(run_id), run_id)


@router.post(
    "/{run_id}/approve",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def approve_run(
    db: DbSession, actor: ActorId, run_id: Annotated[UUID, Path()]
) -> RunResponse:
    return _found(await PayRunService(db).approve_run(run_id, actor), run_id)


@router.post(
    "/{run_id}/process",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def process_run(
    db: DbSession, actor: ActorId, run_id: Annotated[UUID, Path()]
) -> RunResponse:
    """Process the run, locking and stamping every attached entry."""
    return _found(await PayRunService(db).process_run(run_id, actor), run_id)


@router.post(
    "/{run_id}/pay",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def mark_run_paid(
    db: DbSession, actor: ActorId, run_id: Annotated[UUID, Path()]
) -> RunResponse:
    return _found(await PayRunService(db).mark_run_paid(run_id, actor), run_id)


@router.post(
    "/{run_id}/cancel",
    response_model=RunResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def cancel_run(
    db: DbSession,
    actor: ActorId,
    run_id: Annotated[UUID, Path()],
    payload: CancelRequest | None = None,
) -> RunResponse:
    reason = payload.reason if payload else None
    return _found(await PayRunService(db).cancel_run(run_id, actor, reason), run_id)
