# caseload_calendar/api/routes/calendar.py
from datetime import date as date_type
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from caseload_calendar.api.dependencies.calendar import get_calendar_service
from caseload_calendar.schemas.mutation import MutationResult, MutationStatus
from caseload_calendar.schemas.occurrence import CalendarWindow, Occurrence
from caseload_calendar.services.calendar_service import CalendarService, ScheduleMutationError

router = APIRouter(prefix="/calendar", tags=["Calendar"])

_MUTATION_RESPONSES = {
    404: {"description": "No template exists with the given id."},
    409: {"description": "The mutation was rejected (e.g. the occurrence is already logged)."},
    502: {
        "description": (
            "The schedule store failed. For cancel-day, templates written before "
            "the failure are listed in the detail."
        )
    },
}


def build_window(from_date: date_type, to_date: date_type) -> CalendarWindow:
    try:
        return CalendarWindow(start=from_date, end=to_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="to_date must be greater than or equal to from_date",
        ) from exc


async def _run_mutation(coro, not_found_detail: str) -> MutationResult:
    try:
        result = await coro
    except LookupError:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=not_found_detail)
    except ScheduleMutationError as exc:
        detail = str(exc)
        if exc.updated_template_ids:
            detail += f" Already updated: {', '.join(exc.updated_template_ids)}."
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=detail)

    if result.status == MutationStatus.REJECTED:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=result.reason)
    return result


@router.get(
    "/occurrences",
    response_model=list[Occurrence],
    status_code=HTTPStatus.OK,
    summary="Compute calendar occurrences for a date window",
    description=(
        "Expand every active schedule template, reconcile logged sessions, "
        "surface unscheduled sessions and overlay meetings.\n\n"
        "The window is **inclusive** of both dates. Open-ended daily/weekly "
        "templates are expanded past `to_date` up to the configured horizon so "
        "forward navigation does not need another request.\n\n"
        "Results are ordered by date, start time and id, and are recomputed "
        "from stored data on every call."
    ),
    responses={400: {"description": "to_date is before from_date."}},
)
async def list_occurrences(
    from_date: date_type = Query(
        ...,
        description="Start date (inclusive) of the window, in ISO format (YYYY-MM-DD).",
        examples=["2024-01-01"],
    ),
    to_date: date_type = Query(
        ...,
        description="End date (inclusive) of the window, in ISO format (YYYY-MM-DD).",
        examples=["2024-01-31"],
    ),
    service: CalendarService = Depends(get_calendar_service),
) -> list[Occurrence]:
    return await service.occurrences(build_window(from_date, to_date))


@router.post(
    "/templates/{template_id}/cancel",
    response_model=MutationResult,
    summary="Cancel one occurrence of a template",
    description=(
        "Adds `occurrence_date` to the template's cancelled dates. Cancelling an "
        "already-cancelled date is a no-op; a logged occurrence cannot be cancelled."
    ),
    responses=_MUTATION_RESPONSES,
)
async def cancel_occurrence(
    template_id: str = Path(..., description="Id of the template."),
    occurrence_date: date_type = Query(..., description="Date of the occurrence to cancel."),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    return await _run_mutation(
        service.cancel_occurrence(template_id, occurrence_date),
        f"Template with id {template_id} not found.",
    )


@router.post(
    "/cancel-day",
    response_model=MutationResult,
    summary="Cancel every pending occurrence on a date",
    description=(
        "Cancels all scheduled, not yet logged occurrences on `target_date`, "
        "with one write per affected template."
    ),
    responses=_MUTATION_RESPONSES,
)
async def cancel_day(
    target_date: date_type = Query(..., description="Date to clear."),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    return await _run_mutation(
        service.cancel_all_on_date(target_date),
        "Template not found.",
    )


@router.post(
    "/occurrences/{occurrence_id}/reschedule",
    response_model=MutationResult,
    summary="Move a one-time or specific-dates occurrence to another date",
    description=(
        "Drag-to-reschedule. One-time templates get a new start date; "
        "specific-dates templates swap the old date for the new one. Daily and "
        "weekly occurrences cannot be moved individually."
    ),
    responses={
        **_MUTATION_RESPONSES,
        400: {"description": "The occurrence id is malformed."},
    },
)
async def reschedule_occurrence(
    occurrence_id: str = Path(
        ...,
        description="Scheduled occurrence id, `{template_id}:{YYYY-MM-DD}`.",
        examples=["tpl-1:2024-01-10"],
    ),
    new_date: date_type = Query(..., description="Date to move the occurrence to."),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    try:
        coro = service.reschedule_occurrence(occurrence_id, new_date)
        return await _run_mutation(coro, f"No template for occurrence {occurrence_id}.")
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
