# caseload_calendar/schemas/meeting.py
from pydantic import BaseModel, ConfigDict, Field


class MeetingRecordBase(BaseModel):
    """
    A staff meeting (IEP, eligibility, parent conference...) that blocks time
    on the calendar.

    Meetings carry no student participants for conflict purposes.
    """

    title: str = Field(..., examples=["Annual IEP - grade 3"])
    date: str = Field(
        ...,
        description="Start as an ISO date-time (YYYY-MM-DDTHH:MM).",
        examples=["2024-01-10T13:00"],
    )
    end_time: str | None = Field(
        default=None,
        description="End, either HH:MM or an ISO date-time.",
        examples=["14:00"],
    )
    description: str | None = Field(default=None)
    category: str | None = Field(default=None, examples=["IEP"])


class MeetingRecordCreate(MeetingRecordBase):
    id: str | None = Field(default=None)


class MeetingRecord(MeetingRecordBase):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., examples=["mtg-1"])


class MeetingRecordUpdate(BaseModel):
    title: str | None = None
    date: str | None = None
    end_time: str | None = None
    description: str | None = None
    category: str | None = None
