# caseload_calendar/schemas/schedule_template.py

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RecurrencePattern(str, Enum):
    """
    Rule governing how a template expands into dated occurrences.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIFIC_DATES = "specific-dates"


# --------------------------------------------------------------------------
# Base schema shared by create/read
# --------------------------------------------------------------------------

class ScheduleTemplateBase(BaseModel):
    """
    Shared fields of a recurring (or one-time) appointment definition.

    Dates and times are kept as the strings the store holds. They are parsed
    by the input normalizer, which skips a template it cannot read instead of
    failing the whole calendar.
    """

    participant_ids: list[str] = Field(
        ...,
        description="Students attending every occurrence of this template.",
        examples=[["stu-1", "stu-2"]],
    )
    recurrence_pattern: RecurrencePattern = Field(
        default=RecurrencePattern.WEEKLY,
        description="none / daily / weekly / specific-dates.",
    )
    days_of_week: list[int] = Field(
        default_factory=list,
        description="Weekly only. 0 = Sunday ... 6 = Saturday.",
        examples=[[1, 3]],
    )
    specific_dates: list[str] = Field(
        default_factory=list,
        description="specific-dates only. ISO dates (YYYY-MM-DD).",
    )
    start_date: str = Field(
        ...,
        description="First date the template is in effect (YYYY-MM-DD).",
        examples=["2024-01-01"],
    )
    end_date: str | None = Field(
        default=None,
        description="Last date the template is in effect. Open-ended if omitted.",
        examples=["2024-01-31"],
    )
    start_time: str = Field(
        ...,
        description="Local start time (HH:MM).",
        examples=["09:00"],
    )
    end_time: str | None = Field(
        default=None,
        description="Local end time (HH:MM). Wins over duration_minutes.",
        examples=["09:30"],
    )
    duration_minutes: int | None = Field(
        default=None,
        description="Used when end_time is absent.",
        examples=[30],
    )
    cancelled_dates: list[str] = Field(
        default_factory=list,
        description="Dates (YYYY-MM-DD) for which no occurrence is produced.",
    )
    active: bool = Field(
        default=True,
        description="Inactive templates produce no occurrences.",
    )
    goal_ids: list[str] = Field(default_factory=list)
    notes: str | None = Field(default=None)
    is_direct_services: bool = Field(default=True)


class ScheduleTemplateCreate(ScheduleTemplateBase):
    """
    Schema for creating a template. The id is optional; the store assigns one
    when omitted.
    """

    id: str | None = Field(default=None)


class ScheduleTemplateUpdate(BaseModel):
    """
    Partial update of a template. Only provided fields are written.
    """

    participant_ids: list[str] | None = None
    recurrence_pattern: RecurrencePattern | None = None
    days_of_week: list[int] | None = None
    specific_dates: list[str] | None = None
    start_date: str | None = None
    end_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration_minutes: int | None = None
    cancelled_dates: list[str] | None = None
    active: bool | None = None
    goal_ids: list[str] | None = None
    notes: str | None = None
    is_direct_services: bool | None = None


class ScheduleTemplate(ScheduleTemplateBase):
    """
    A stored template, as returned by the Schedule Store.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., examples=["tpl-1"])
    date_created: str | None = Field(default=None)
    date_updated: str | None = Field(default=None)
