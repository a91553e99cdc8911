# caseload_calendar/schemas/occurrence.py
from __future__ import annotations

from datetime import date as date_type, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from caseload_calendar.schemas.session_record import SessionRecord


class OccurrenceStatus(str, Enum):
    """
    Classification of one (template, date) pair on a computation pass.
    """

    SCHEDULED = "SCHEDULED"
    LOGGED = "LOGGED"
    MISSED = "MISSED"
    CANCELLED = "CANCELLED"


class OccurrenceKind(str, Enum):
    SCHEDULED = "scheduled"
    ORPHAN = "orphan"
    MEETING = "meeting"


class CalendarWindow(BaseModel):
    """
    Inclusive date range the calendar is currently showing.
    """

    model_config = ConfigDict(frozen=True)

    start: date_type = Field(..., examples=["2024-01-01"])
    end: date_type = Field(..., examples=["2024-01-31"])

    @model_validator(mode="after")
    def _check_order(self) -> "CalendarWindow":
        if self.end < self.start:
            raise ValueError("window end must be greater than or equal to window start")
        return self

    def contains(self, value: date_type) -> bool:
        return self.start <= value <= self.end


class Occurrence(BaseModel):
    """
    One concrete calendar entry derived from a template, an unmatched logged
    session (orphan) or a meeting.

    Occurrences are never persisted; they are recomputed from the stored
    templates, sessions and meetings on every change.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        description=(
            "'{template_id}:{date}' for scheduled occurrences, "
            "'session:{id}' for orphans, 'meeting:{id}' for meetings."
        ),
        examples=["tpl-1:2024-01-10"],
    )
    kind: OccurrenceKind = Field(default=OccurrenceKind.SCHEDULED)
    template_id: str | None = Field(default=None)
    date: date_type
    start_time: time
    end_time: time
    participant_ids: list[str] = Field(default_factory=list)
    title: str | None = Field(default=None, description="Meetings only.")
    has_conflict: bool = Field(default=False)
    is_logged: bool = Field(default=False)
    is_missed: bool = Field(default=False)
    is_meeting: bool = Field(default=False)
    status: OccurrenceStatus = Field(default=OccurrenceStatus.SCHEDULED)
    matched_sessions: list[SessionRecord] = Field(
        default_factory=list,
        description="Logged session records reconciled with this occurrence.",
    )

    @property
    def matched_session_ids(self) -> list[str]:
        return [s.id for s in self.matched_sessions]


_OCCURRENCE_ID_SEPARATOR = ":"


def build_occurrence_id(template_id: str, occurrence_date: date_type) -> str:
    return f"{template_id}{_OCCURRENCE_ID_SEPARATOR}{occurrence_date.isoformat()}"


def parse_occurrence_id(occurrence_id: str) -> tuple[str, date_type]:
    """
    Split a scheduled occurrence id back into (template_id, date).

    Raises ValueError for orphan/meeting ids or malformed values.
    """
    template_id, sep, date_part = occurrence_id.rpartition(_OCCURRENCE_ID_SEPARATOR)
    if not sep or not template_id or template_id in ("session", "meeting"):
        raise ValueError(f"'{occurrence_id}' is not a scheduled occurrence id")
    return template_id, date_type.fromisoformat(date_part)
