# caseload_calendar/api/routes/sessions.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from caseload_calendar.db.session import get_db
from caseload_calendar.schemas.session_record import (
    SessionRecord,
    SessionRecordCreate,
    SessionRecordUpdate,
)
from caseload_calendar.services.input_normalizer import parse_local_datetime
from caseload_calendar.services.stores import SqlSessionStore

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def _not_found(session_id: str) -> HTTPException:
    return HTTPException(
        status_code=HTTPStatus.NOT_FOUND,
        detail=f"Session with id {session_id} not found.",
    )


def _invalid(exc: ValidationError) -> HTTPException:
    error = exc.errors()[0]
    field_name = ".".join(str(part) for part in error["loc"])
    return HTTPException(
        status_code=HTTPStatus.BAD_REQUEST,
        detail=f"Invalid value for {field_name}: {error['msg']}",
    )


def _check_start(value: str | None) -> None:
    if value is None:
        return
    try:
        parse_local_datetime(value)
    except ValueError:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Session date '{value}' is not an ISO date-time.",
        )


@router.post(
    "",
    response_model=SessionRecord,
    status_code=HTTPStatus.CREATED,
    summary="Log a session",
    description=(
        "Store one logged session for one student. For group sessions, post "
        "one record per student with a shared `group_session_id`.\n\n"
        "Link the record to its schedule template via `template_id` so the "
        "calendar can reconcile it with the scheduled occurrence directly."
    ),
)
async def create_session(
    payload: SessionRecordCreate,
    db: AsyncSession = Depends(get_db),
) -> SessionRecord:
    _check_start(payload.date)
    return await SqlSessionStore(db).create_session(payload)


@router.get(
    "",
    response_model=list[SessionRecord],
    summary="List logged sessions in creation order",
)
async def list_sessions(
    participant_id: str | None = Query(
        default=None,
        description="If provided, only sessions for this student are returned.",
    ),
    db: AsyncSession = Depends(get_db),
) -> list[SessionRecord]:
    sessions = await SqlSessionStore(db).list_sessions()
    if participant_id is None:
        return sessions
    return [s for s in sessions if s.participant_id == participant_id]


@router.patch(
    "/{session_id}",
    response_model=SessionRecord,
    summary="Partially update a logged session",
    responses={
        400: {"description": "The update would leave the session invalid."},
        404: {"description": "No session exists with the given id."},
    },
)
async def update_session(
    session_id: str = Path(..., description="Id of the session to update."),
    payload: SessionRecordUpdate | None = None,
    db: AsyncSession = Depends(get_db),
) -> SessionRecord:
    changes = payload.model_dump(exclude_unset=True) if payload else {}
    _check_start(changes.get("date"))
    try:
        return await SqlSessionStore(db).update_session(session_id, changes)
    except LookupError:
        raise _not_found(session_id)
    except ValidationError as exc:
        raise _invalid(exc)


@router.delete(
    "/{session_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete a logged session",
    description="The matching occurrence reverts to scheduled on the next calendar read.",
    responses={404: {"description": "No session exists with the given id."}},
)
async def delete_session(
    session_id: str = Path(..., description="Id of the session to delete."),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await SqlSessionStore(db).delete_session(session_id)
    except LookupError:
        raise _not_found(session_id)
