# caseload_calendar/api/routes/meetings.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from caseload_calendar.db.session import get_db
from caseload_calendar.schemas.meeting import MeetingRecord, MeetingRecordCreate, MeetingRecordUpdate
from caseload_calendar.services.stores import SqlMeetingStore

router = APIRouter(prefix="/meetings", tags=["Meetings"])


def _not_found(meeting_id: str) -> HTTPException:
    return HTTPException(
        status_code=HTTPStatus.NOT_FOUND,
        detail=f"Meeting with id {meeting_id} not found.",
    )


def _invalid(exc: ValidationError) -> HTTPException:
    error = exc.errors()[0]
    field_name = ".".join(str(part) for part in error["loc"])
    return HTTPException(
        status_code=HTTPStatus.BAD_REQUEST,
        detail=f"Invalid value for {field_name}: {error['msg']}",
    )


@router.post(
    "",
    response_model=MeetingRecord,
    status_code=HTTPStatus.CREATED,
    summary="Add a meeting block to the calendar",
)
async def create_meeting(
    payload: MeetingRecordCreate,
    db: AsyncSession = Depends(get_db),
) -> MeetingRecord:
    return await SqlMeetingStore(db).create_meeting(payload)


@router.get(
    "",
    response_model=list[MeetingRecord],
    summary="List meetings",
)
async def list_meetings(db: AsyncSession = Depends(get_db)) -> list[MeetingRecord]:
    return await SqlMeetingStore(db).list_meetings()


@router.patch(
    "/{meeting_id}",
    response_model=MeetingRecord,
    summary="Partially update a meeting",
    responses={
        400: {"description": "The update would leave the meeting invalid."},
        404: {"description": "No meeting exists with the given id."},
    },
)
async def update_meeting(
    meeting_id: str = Path(..., description="Id of the meeting to update."),
    payload: MeetingRecordUpdate | None = None,
    db: AsyncSession = Depends(get_db),
) -> MeetingRecord:
    changes = payload.model_dump(exclude_unset=True) if payload else {}
    try:
        return await SqlMeetingStore(db).update_meeting(meeting_id, changes)
    except LookupError:
        raise _not_found(meeting_id)
    except ValidationError as exc:
        raise _invalid(exc)


@router.delete(
    "/{meeting_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete a meeting",
    responses={404: {"description": "No meeting exists with the given id."}},
)
async def delete_meeting(
    meeting_id: str = Path(..., description="Id of the meeting to delete."),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await SqlMeetingStore(db).delete_meeting(meeting_id)
    except LookupError:
        raise _not_found(meeting_id)
