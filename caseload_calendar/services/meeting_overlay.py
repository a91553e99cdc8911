# caseload_calendar/services/meeting_overlay.py
from __future__ import annotations

from typing import List, Sequence

from caseload_calendar.schemas.occurrence import (
    CalendarWindow,
    Occurrence,
    OccurrenceKind,
    OccurrenceStatus,
)
from caseload_calendar.services.input_normalizer import NormalizedMeeting

MEETING_ID_PREFIX = "meeting:"


class MeetingOverlay:
    """
    Injects meetings that fall inside the window as blocking calendar slots.

    Meeting occurrences have no students, are never logged or missed, and are
    ignored by student conflict detection.
    """

    @staticmethod
    def overlay(
        meetings: Sequence[NormalizedMeeting],
        window: CalendarWindow,
    ) -> List[Occurrence]:
        return [
            Occurrence(
                id=f"{MEETING_ID_PREFIX}{meeting.id}",
                kind=OccurrenceKind.MEETING,
                template_id=None,
                date=meeting.date,
                start_time=meeting.start.time(),
                end_time=meeting.end_time,
                participant_ids=[],
                title=meeting.source.title,
                is_logged=False,
                is_missed=False,
                is_meeting=True,
                status=OccurrenceStatus.SCHEDULED,
            )
            for meeting in meetings
            if window.contains(meeting.date)
        ]
