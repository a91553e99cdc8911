# caseload_calendar/services/orphan_collector.py
from __future__ import annotations

import logging
from typing import Collection, List, Sequence

from caseload_calendar.schemas.occurrence import (
    CalendarWindow,
    Occurrence,
    OccurrenceKind,
    OccurrenceStatus,
)
from caseload_calendar.services.input_normalizer import InputNormalizer, NormalizedSession

logger = logging.getLogger(__name__)

ORPHAN_ID_PREFIX = "session:"


class OrphanCollector:
    """
    Surfaces logged sessions that no scheduled occurrence claimed (template
    deleted, link missing, or no occurrence on that date) as standalone
    occurrences so they stay visible and editable.
    """

    def __init__(self, normalizer: InputNormalizer) -> None:
        self.normalizer = normalizer

    def collect(
        self,
        sessions: Sequence[NormalizedSession],
        claimed_ids: Collection[str],
        window: CalendarWindow,
    ) -> List[Occurrence]:
        orphans: List[Occurrence] = []
        for session in sessions:
            if session.id in claimed_ids or not window.contains(session.date):
                continue
            orphans.append(self._to_occurrence(session))

        if orphans:
            logger.debug("Collected %d orphan session(s) in %s..%s", len(orphans), window.start, window.end)
        return orphans

    def _to_occurrence(self, session: NormalizedSession) -> Occurrence:
        return Occurrence(
            id=f"{ORPHAN_ID_PREFIX}{session.id}",
            kind=OccurrenceKind.ORPHAN,
            template_id=None,
            date=session.date,
            start_time=session.start.time(),
            end_time=self.normalizer.session_end(session),
            participant_ids=[session.participant_id],
            is_logged=True,
            is_missed=session.missed,
            status=OccurrenceStatus.MISSED if session.missed else OccurrenceStatus.LOGGED,
            matched_sessions=[session.source],
        )
