"""Payroll entry API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from timesheet_payroll.api.dependencies import ActorId, DbSession
from timesheet_payroll.api.schemas import (
    ApproveRequest,
    EntryCreate,
    EntryListResponse,
    EntryResponse,
    EntryUpdate,
    ErrorResponse,
    LockRequest,
    PaginationMeta,
    RejectRequest,
    TimesheetLinkResponse,
)
from timesheet_payroll.models import PayrollEntry
from timesheet_payroll.services.entry_service import EntryDraft, EntryFilters, EntryService

router = APIRouter(prefix="/payroll/entries", tags=["payroll-entries"])

# Detail fields that may be explicitly cleared with null
CLEARABLE = {"notes", "check_number", "scheduled_date"}


def _found(entry: PayrollEntry | None, entry_id: UUID) -> EntryResponse:
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payroll entry {entry_id} not found",
        )
    return EntryResponse.model_validate(entry)


@router.get("", response_model=EntryListResponse)
async def list_entries(
    db: DbSession,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    search: str | None = None,
    pay_period_id: UUID | None = None,
    payroll_run_id: UUID | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    employee_id: UUID | None = None,
) -> EntryListResponse:
    """List payroll entries with optional filters."""
    result = await EntryService(db).list_entries(
        page,
        limit,
        EntryFilters(
            search=search,
            pay_period_id=pay_period_id,
            payroll_run_id=payroll_run_id,
            status=status_filter,
            employee_id=employee_id,
        ),
    )
    return EntryListResponse(
        items=[EntryResponse.model_validate(e) for e in result.items],
        pagination=PaginationMeta(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.post(
    "",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_entry(db: DbSession, actor: ActorId, payload: EntryCreate) -> EntryResponse:
    """Create a manual draft entry."""
    entry = await EntryService(db).create_entry(EntryDraft(**payload.model_dump()), actor)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payroll run or employee not found",
        )
    return EntryResponse.model_validate(entry)


@router.get(
    "/{entry_id}",
    response_model=EntryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_entry(db: DbSession, entry_id: Annotated[UUID, Path()]) -> EntryResponse:
    return _found(await EntryService(db).get_entry(entry_id), entry_id)


@router.put(
    "/{entry_id}",
    response_model=EntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_entry(
    db: DbSession,
    actor: ActorId,
    entry_id: Annotated[UUID, Path()],
    payload: EntryUpdate,
) -> EntryResponse:
    """Update an unlocked entry and recalculate its pay."""
    changes = {
        name: value
        for name, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or name in CLEARABLE
    }
    entry = await EntryService(db).update_entry(entry_id, changes, actor)
    return _found(entry, entry_id)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_entry(
    db: DbSession, actor: ActorId, entry_id: Annotated[UUID, Path()]
) -> None:
    """Soft-delete an unlocked entry."""
    entry = await EntryService(db).delete_entry(entry_id, actor)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payroll entry {entry_id} not found",
        )


@router.post("/{entry_id}/submit", response_model=EntryResponse)
async def submit_entry(
    db: DbSession, actor: ActorId, entry_id: Annotated[UUID, Path()]
) -> EntryResponse:
    return _found(await EntryService(db).submit_entry(entry_id, actor), entry_id)


@router.post(
    "/{entry_id}/approve",
    response_model=EntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def approve_entry(
    db: DbSession,
    actor: ActorId,
    entry_id: Annotated[UUID, Path()],
    payload: ApproveRequest | None = None,
) -> EntryResponse:
    notes = payload.notes if payload else None
    return _found(await EntryService(db).approve_entry(entry_id, actor, notes), entry_id)


@router.post(
    "/{entry_id}/reject",
    response_model=EntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def reject_entry(
    db: DbSession,
    actor: ActorId,
    entry_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> EntryResponse:
    return _found(
        await EntryService(db).reject_entry(entry_id, payload.reason, actor), entry_id
    )


@router.post("/{entry_id}/lock", response_model=EntryResponse)
async def lock_entry(
    db: DbSession,
    actor: ActorId,
    entry_id: Annotated[UUID, Path()],
    payload: LockRequest,
) -> EntryResponse:
    return _found(await EntryService(db).lock_entry(entry_id, payload.reason, actor), entry_id)


@router.post("/{entry_id}/unlock", response_model=EntryResponse)
async def unlock_entry(
    db: DbSession, actor: ActorId, entry_id: Annotated[UUID, Path()]
) -> EntryResponse:
    return _found(await EntryService(db).unlock_entry(entry_id, actor), entry_id)


@router.get("/{entry_id}/timesheets", response_model=list[TimesheetLinkResponse])
async def list_entry_timesheets(
    db: DbSession, entry_id: Annotated[UUID, Path()]
) -> list[TimesheetLinkResponse]:
    """Attendance records currently included in the entry."""
    _found(await EntryService(db).get_entry(entry_id), entry_id)
    links = await EntryService(db).list_timesheet_links(entry_id)
    return [TimesheetLinkResponse.model_validate(link) for link in links]
