# caseload_calendar/schemas/schedule_summary.py
from datetime import date

from pydantic import BaseModel, Field


class TemplateScheduleSummary(BaseModel):
    """
    Per-template roll-up of occurrence outcomes over a date range.
    """

    template_id: str = Field(..., examples=["tpl-1"])
    participant_ids: list[str] = Field(default_factory=list)

    total_dates: int = Field(
        ...,
        description="Dates in the range on which the template applies, cancelled ones included.",
        examples=[9],
    )
    scheduled_count: int = Field(
        ...,
        description="Dates still SCHEDULED (not logged, not cancelled).",
        examples=[4],
    )
    logged_count: int = Field(
        ...,
        description="Dates LOGGED (a session was reconciled and not missed).",
        examples=[3],
    )
    missed_count: int = Field(
        ...,
        description="Dates MISSED (a session was reconciled and flagged missed).",
        examples=[1],
    )
    cancelled_count: int = Field(
        ...,
        description="Dates in the template's cancelled-dates set.",
        examples=[1],
    )
    completion_pct: float = Field(
        ...,
        description=(
            "LOGGED / (LOGGED + MISSED + SCHEDULED dates before as_of) * 100. "
            "0.0 when nothing is due yet."
        ),
        examples=[75.0],
    )


class ScheduleSummary(BaseModel):
    """
    Aggregated schedule summary across all templates for a date range.
    """

    start_date: date = Field(..., description="Start date (inclusive) of the range.")
    end_date: date = Field(..., description="End date (inclusive) of the range.")
    as_of: date = Field(..., description="Reference date separating past from upcoming.")

    templates: list[TemplateScheduleSummary] = Field(
        ...,
        description="Per-template summaries, ordered by template id.",
    )
    orphan_count: int = Field(
        ...,
        description="Logged sessions in range that matched no scheduled occurrence.",
    )
    meeting_count: int = Field(..., description="Meetings in range.")
    conflict_count: int = Field(
        ...,
        description="Occurrences in range flagged as overlapping another for a shared student.",
    )
