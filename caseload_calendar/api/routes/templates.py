# caseload_calendar/api/routes/templates.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caseload_calendar.api.dependencies.calendar import get_calendar_service
from caseload_calendar.db.session import get_db
from caseload_calendar.schemas.mutation import MutationResult, MutationStatus
from caseload_calendar.schemas.schedule_template import (
    ScheduleTemplate,
    ScheduleTemplateCreate,
    ScheduleTemplateUpdate,
)
from caseload_calendar.services.calendar_service import CalendarService, ScheduleMutationError
from caseload_calendar.services.input_normalizer import InputNormalizer
from caseload_calendar.services.stores import SqlScheduleStore

router = APIRouter(prefix="/templates", tags=["Schedule templates"])


def _not_found(template_id: str) -> HTTPException:
    return HTTPException(
        status_code=HTTPStatus.NOT_FOUND,
        detail=f"Template with id {template_id} not found.",
    )


@router.post(
    "",
    response_model=ScheduleTemplate,
    status_code=HTTPStatus.CREATED,
    summary="Create a schedule template",
    description=(
        "Register a recurring (daily / weekly / specific-dates) or one-time "
        "appointment for one or more students.\n\n"
        "Either `end_time` or `duration_minutes` may be given; with neither the "
        "appointment lasts the default span."
    ),
    responses={
        400: {"description": "Dates or times cannot be parsed."},
        409: {"description": "A template with the same id already exists."},
    },
)
async def create_template(
    payload: ScheduleTemplateCreate,
    db: AsyncSession = Depends(get_db),
) -> ScheduleTemplate:
    store = SqlScheduleStore(db)

    if payload.id and await store.get_template(payload.id) is not None:
        raise HTTPException(
            status_code=HTTPStatus.CONFLICT,
            detail=f"Template with id '{payload.id}' already exists.",
        )

    candidate = ScheduleTemplate(**payload.model_dump(exclude={"id"}), id=payload.id or "new")
    if InputNormalizer().normalize_template(candidate) is None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Template dates or times could not be parsed.",
        )

    return await store.create_template(payload)


@router.get(
    "",
    response_model=list[ScheduleTemplate],
    summary="List schedule templates",
)
async def list_templates(
    only_active: bool | None = Query(
        default=None,
        description=(
            "If true, returns only active templates. If false, only inactive "
            "ones. If omitted, returns all."
        ),
        examples=[True],
    ),
    db: AsyncSession = Depends(get_db),
) -> list[ScheduleTemplate]:
    templates = await SqlScheduleStore(db).list_templates()
    if only_active is None:
        return templates
    return [t for t in templates if t.active is only_active]


@router.get(
    "/{template_id}",
    response_model=ScheduleTemplate,
    summary="Get a schedule template by id",
    responses={404: {"description": "No template exists with the given id."}},
)
async def get_template(
    template_id: str = Path(..., description="Id of the template to retrieve."),
    db: AsyncSession = Depends(get_db),
) -> ScheduleTemplate:
    template = await SqlScheduleStore(db).get_template(template_id)
    if template is None:
        raise _not_found(template_id)
    return template


@router.patch(
    "/{template_id}",
    response_model=MutationResult,
    summary="Partially update a schedule template",
    description=(
        "Only fields provided in the request body are modified. The update is "
        "validated against the full template before it is written.\n\n"
        "Logged sessions are not migrated: occurrences are recomputed from the "
        "new template on the next calendar read."
    ),
    responses={
        404: {"description": "No template exists with the given id."},
        409: {"description": "The resulting template would be invalid."},
        502: {"description": "The schedule store failed."},
    },
)
async def update_template(
    template_id: str = Path(..., description="Id of the template to update."),
    payload: ScheduleTemplateUpdate | None = None,
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    try:
        result = await service.update_template(template_id, payload or ScheduleTemplateUpdate())
    except LookupError:
        raise _not_found(template_id)
    except ScheduleMutationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc))

    if result.status == MutationStatus.REJECTED:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=result.reason)
    return result


@router.delete(
    "/{template_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete a schedule template",
    description=(
        "Sessions logged against the template are kept and show up on the "
        "calendar as unscheduled (orphan) sessions."
    ),
    responses={404: {"description": "No template exists with the given id."}},
)
async def delete_template(
    template_id: str = Path(..., description="Id of the template to delete."),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await SqlScheduleStore(db).delete_template(template_id)
    except LookupError:
        raise _not_found(template_id)
