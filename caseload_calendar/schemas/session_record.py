# caseload_calendar/schemas/session_record.py
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SessionRecordBase(BaseModel):
    """
    A logged therapy session for one student.

    Group sessions are stored as one record per student sharing a
    `group_session_id`.
    """

    participant_id: str = Field(
        ...,
        description="Student the session was logged for.",
        examples=["stu-1"],
    )
    date: str = Field(
        ...,
        description="Actual start as an ISO date-time (YYYY-MM-DDTHH:MM).",
        examples=["2024-01-10T10:05"],
    )
    end_time: str | None = Field(
        default=None,
        description="Actual end, either HH:MM or an ISO date-time.",
        examples=["10:35"],
    )
    template_id: str | None = Field(
        default=None,
        description="Schedule template this session was logged from, if any.",
    )
    group_session_id: str | None = Field(
        default=None,
        description="Shared by all records of one multi-student session.",
    )
    missed: bool = Field(
        default=False,
        description="True if the student missed the session.",
    )
    is_direct_services: bool = Field(default=True)
    notes: str | None = Field(default=None)
    goal_ids: list[str] = Field(default_factory=list)
    performance_data: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Goal performance entries. Opaque to the occurrence engine.",
    )


class SessionRecordCreate(SessionRecordBase):
    id: str | None = Field(default=None)


class SessionRecordUpdate(BaseModel):
    participant_id: str | None = None
    date: str | None = None
    end_time: str | None = None
    template_id: str | None = None
    group_session_id: str | None = None
    missed: bool | None = None
    is_direct_services: bool | None = None
    notes: str | None = None
    goal_ids: list[str] | None = None
    performance_data: list[dict[str, Any]] | None = None


class SessionRecord(SessionRecordBase):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., examples=["ses-1"])
