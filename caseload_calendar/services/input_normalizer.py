# caseload_calendar/services/input_normalizer.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional

from dateutil.parser import isoparse

from caseload_calendar.schemas.meeting import MeetingRecord
from caseload_calendar.schemas.schedule_template import RecurrencePattern, ScheduleTemplate
from caseload_calendar.schemas.session_record import SessionRecord
from caseload_calendar.services.engine_settings import EngineSettings

logger = logging.getLogger(__name__)

_LAST_MINUTE = time(23, 59)


@dataclass(frozen=True)
class NormalizedTemplate:
    source: ScheduleTemplate
    id: str
    participant_ids: tuple[str, ...]
    pattern: RecurrencePattern
    weekdays: frozenset[int]
    specific_dates: tuple[date, ...]
    start_date: date
    end_date: Optional[date]
    start_time: time
    end_time: time
    cancelled_dates: frozenset[date]
    active: bool

    def is_cancelled(self, value: date) -> bool:
        return value in self.cancelled_dates


@dataclass(frozen=True)
class NormalizedSession:
    source: SessionRecord
    position: int
    id: str
    participant_id: str
    start: datetime
    end_time: Optional[time]
    template_id: Optional[str]
    group_id: Optional[str]
    missed: bool

    @property
    def date(self) -> date:
        return self.start.date()


@dataclass(frozen=True)
class NormalizedMeeting:
    source: MeetingRecord
    id: str
    start: datetime
    end_time: time

    @property
    def date(self) -> date:
        return self.start.date()


@dataclass(frozen=True)
class NormalizedSnapshot:
    templates: tuple[NormalizedTemplate, ...] = ()
    sessions: tuple[NormalizedSession, ...] = ()
    meetings: tuple[NormalizedMeeting, ...] = ()
    skipped_ids: tuple[str, ...] = field(default=())


def to_stored_weekday(value: date) -> int:
    """
    Convert a date to the stored weekday numbering (0 = Sunday ... 6 = Saturday).
    """
    return (value.weekday() + 1) % 7


def parse_date(value: str) -> date:
    """
    Parse YYYY-MM-DD. A trailing time part (YYYY-MM-DDTHH:MM...) is ignored.
    """
    text = value.strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    return date.fromisoformat(text)


def parse_clock(value: str) -> time:
    """
    Parse HH:MM or HH:MM:SS, tolerating single-digit hours ("9:00").
    """
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"invalid time of day: {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return time(hour, minute, second)


def parse_local_datetime(value: str, zone: Optional[tzinfo] = None) -> datetime:
    """
    Parse an ISO-8601 date-time into a naive local datetime.

    Offset-aware values ("Z", "+02:00") are converted to `zone` first; without
    a zone they keep the wall-clock time they were recorded with. Naive values
    are already local. A bare date means the start of that day.
    """
    dt = isoparse(value.strip())
    if dt.tzinfo is not None:
        if zone is not None:
            dt = dt.astimezone(zone)
        dt = dt.replace(tzinfo=None)
    return dt


def parse_end_of(value: str, zone: Optional[tzinfo] = None) -> time:
    """
    End times are stored either as HH:MM or as a full ISO date-time.
    """
    if "T" in value:
        return parse_local_datetime(value, zone).time()
    return parse_clock(value)


def add_minutes(start: time, minutes: float) -> time:
    """
    Shift a time of day by `minutes`, clamped to the last minute of the day.
    """
    anchor = datetime.combine(date.min, start)
    shifted = anchor + timedelta(minutes=minutes)
    if shifted.date() != anchor.date():
        return _LAST_MINUTE
    return shifted.time()


class InputNormalizer:
    """
    Turns raw store records into one canonical time-range representation
    before expansion, matching and conflict detection run.

    Rules
    -----
    - Template end: explicit end_time wins; else start + duration_minutes;
      else start + default span.
    - Any unparsable date/time skips that entity (warning logged). It is
      simply absent from the computed calendar.
    - Session records keep their position in the snapshot as creation order
      for deterministic tie-breaks.
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self.settings = settings or EngineSettings()

    def normalize_snapshot(
        self,
        templates: Iterable[ScheduleTemplate],
        sessions: Iterable[SessionRecord],
        meetings: Iterable[MeetingRecord],
    ) -> NormalizedSnapshot:
        skipped: list[str] = []

        norm_templates: list[NormalizedTemplate] = []
        for template in templates:
            normalized = self.normalize_template(template)
            if normalized is None:
                skipped.append(template.id)
            else:
                norm_templates.append(normalized)

        norm_sessions: list[NormalizedSession] = []
        for position, record in enumerate(sessions):
            normalized_session = self.normalize_session(record, position)
            if normalized_session is None:
                skipped.append(record.id)
            else:
                norm_sessions.append(normalized_session)

        norm_meetings: list[NormalizedMeeting] = []
        for meeting in meetings:
            normalized_meeting = self.normalize_meeting(meeting)
            if normalized_meeting is None:
                skipped.append(meeting.id)
            else:
                norm_meetings.append(normalized_meeting)

        return NormalizedSnapshot(
            templates=tuple(norm_templates),
            sessions=tuple(norm_sessions),
            meetings=tuple(norm_meetings),
            skipped_ids=tuple(skipped),
        )

    def normalize_template(self, template: ScheduleTemplate) -> Optional[NormalizedTemplate]:
        try:
            start_date = parse_date(template.start_date)
            end_date = parse_date(template.end_date) if template.end_date else None
            specific_dates = tuple(sorted({parse_date(d) for d in template.specific_dates}))
            cancelled_dates = frozenset(parse_date(d) for d in template.cancelled_dates)
            start_time = parse_clock(template.start_time)
            explicit_end = parse_clock(template.end_time) if template.end_time else None
        except ValueError as exc:
            logger.warning("Skipping schedule template %s: %s", template.id, exc)
            return None

        end_time = self._resolve_template_end(template, start_time, explicit_end)

        weekdays = frozenset(d for d in template.days_of_week if 0 <= d <= 6)
        if len(weekdays) != len(set(template.days_of_week)):
            logger.warning(
                "Schedule template %s has out-of-range weekdays %s; ignoring them",
                template.id,
                sorted(set(template.days_of_week) - weekdays),
            )

        return NormalizedTemplate(
            source=template,
            id=template.id,
            participant_ids=tuple(dict.fromkeys(template.participant_ids)),
            pattern=template.recurrence_pattern,
            weekdays=weekdays,
            specific_dates=specific_dates,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            cancelled_dates=cancelled_dates,
            active=template.active,
        )

    def _resolve_template_end(
        self,
        template: ScheduleTemplate,
        start_time: time,
        explicit_end: Optional[time],
    ) -> time:
        if explicit_end is not None:
            if explicit_end > start_time:
                return explicit_end
            logger.warning(
                "Schedule template %s ends (%s) before it starts (%s); using duration",
                template.id,
                explicit_end,
                start_time,
            )

        if template.duration_minutes and template.duration_minutes > 0:
            return add_minutes(start_time, template.duration_minutes)

        return add_minutes(start_time, self.settings.default_duration_minutes)

    def normalize_session(
        self, record: SessionRecord, position: int
    ) -> Optional[NormalizedSession]:
        try:
            start = parse_local_datetime(record.date, self.settings.zone)
            end_time = parse_end_of(record.end_time, self.settings.zone) if record.end_time else None
        except ValueError as exc:
            logger.warning("Skipping session record %s: %s", record.id, exc)
            return None

        return NormalizedSession(
            source=record,
            position=position,
            id=record.id,
            participant_id=record.participant_id,
            start=start,
            end_time=end_time,
            template_id=record.template_id or None,
            group_id=record.group_session_id or None,
            missed=bool(record.missed),
        )

    def normalize_meeting(self, meeting: MeetingRecord) -> Optional[NormalizedMeeting]:
        try:
            start = parse_local_datetime(meeting.date, self.settings.zone)
            end_time = parse_end_of(meeting.end_time, self.settings.zone) if meeting.end_time else None
        except ValueError as exc:
            logger.warning("Skipping meeting %s: %s", meeting.id, exc)
            return None

        if end_time is None or end_time <= start.time():
            end_time = add_minutes(start.time(), self.settings.default_duration_minutes)

        return NormalizedMeeting(
            source=meeting,
            id=meeting.id,
            start=start,
            end_time=end_time,
        )

    def session_end(self, session: NormalizedSession) -> time:
        """
        End of a logged session: recorded end, else start + default span.
        """
        if session.end_time is not None and session.end_time > session.start.time():
            return session.end_time
        return add_minutes(session.start.time(), self.settings.default_duration_minutes)
