# caseload_calendar/api/routes/reports.py
from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from http import HTTPStatus

from caseload_calendar.api.dependencies.calendar import get_calendar_service
from caseload_calendar.api.routes.calendar import build_window
from caseload_calendar.schemas.schedule_summary import ScheduleSummary
from caseload_calendar.services.calendar_service import CalendarService

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


@router.get(
    "/schedule-summary",
    response_model=ScheduleSummary,
    status_code=HTTPStatus.OK,
    summary="Get schedule outcome summary for all templates",
    description=(
        "Return per-template occurrence outcomes for the given window.\n\n"
        "The range is **inclusive** of both `from_date` and `to_date`.\n\n"
        "For each template with at least one date in the range, the report includes:\n"
        "- Total number of dates (cancelled ones included)\n"
        "- Count of dates with status: SCHEDULED, LOGGED, MISSED, CANCELLED\n"
        "- Completion percentage = LOGGED / (LOGGED + MISSED + SCHEDULED before `as_of`) * 100\n\n"
        "Orphan sessions, meetings and conflicting occurrences in the range are "
        "counted as well."
    ),
    responses={
        200: {
            "description": "Summary successfully computed.",
            "content": {
                "application/json": {
                    "example": {
                        "start_date": "2024-01-01",
                        "end_date": "2024-01-31",
                        "as_of": "2024-01-20",
                        "templates": [
                            {
                                "template_id": "tpl-1",
                                "participant_ids": ["stu-1"],
                                "total_dates": 9,
                                "scheduled_count": 4,
                                "logged_count": 3,
                                "missed_count": 1,
                                "cancelled_count": 1,
                                "completion_pct": 75.0,
                            }
                        ],
                        "orphan_count": 0,
                        "meeting_count": 2,
                        "conflict_count": 0,
                    }
                }
            },
        },
        400: {"description": "to_date is before from_date."},
    },
)
async def get_schedule_summary(
    from_date: date_type = Query(
        ...,
        description="Start date (inclusive) of the reporting window (YYYY-MM-DD).",
        examples=["2024-01-01"],
    ),
    to_date: date_type = Query(
        ...,
        description=(
            "End date (inclusive) of the reporting window (YYYY-MM-DD). "
            "Must be greater than or equal to from_date."
        ),
        examples=["2024-01-31"],
    ),
    as_of: date_type | None = Query(
        default=None,
        description="Dates before this count as due. Defaults to today.",
    ),
    service: CalendarService = Depends(get_calendar_service),
) -> ScheduleSummary:
    window = build_window(from_date, to_date)
    return await service.schedule_summary(window, as_of=as_of)
