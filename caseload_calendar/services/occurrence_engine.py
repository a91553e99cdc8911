# caseload_calendar/services/occurrence_engine.py
from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import asdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from caseload_calendar.schemas.meeting import MeetingRecord
from caseload_calendar.schemas.occurrence import (
    CalendarWindow,
    Occurrence,
    OccurrenceKind,
    OccurrenceStatus,
    build_occurrence_id,
)
from caseload_calendar.schemas.schedule_template import ScheduleTemplate
from caseload_calendar.schemas.session_record import SessionRecord
from caseload_calendar.services.conflict_detector import ConflictDetector
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.input_normalizer import (
    InputNormalizer,
    NormalizedSnapshot,
    NormalizedTemplate,
)
from caseload_calendar.services.meeting_overlay import MeetingOverlay
from caseload_calendar.services.occurrence_evaluator import OccurrenceEvaluator
from caseload_calendar.services.orphan_collector import OrphanCollector
from caseload_calendar.services.recurrence_expander import RecurrenceExpander
from caseload_calendar.services.session_matcher import MatchResult, MatchTarget, SessionMatcher

logger = logging.getLogger(__name__)


def occurrence_sort_key(occurrence: Occurrence) -> tuple:
    return (occurrence.date, occurrence.start_time, occurrence.id)


class OccurrenceEngine:
    """
    Pure pipeline from an input snapshot to the calendar's occurrence list.

    Steps
    -----
    1) Normalize templates/sessions/meetings (unreadable entities are skipped).
    2) Expand every active template over the window.
    3) Reconcile logged sessions with the scheduled occurrences.
    4) Surface unclaimed in-window sessions as orphans.
    5) Overlay in-window meetings.
    6) Flag student conflicts.

    Output is ordered by (date, start time, id) and depends only on the inputs.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        matcher: SessionMatcher | None = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.normalizer = InputNormalizer(self.settings)
        self.expander = RecurrenceExpander(self.settings)
        self.matcher = matcher or SessionMatcher(self.settings)
        self.orphans = OrphanCollector(self.normalizer)

    def compute(
        self,
        templates: Iterable[ScheduleTemplate],
        sessions: Iterable[SessionRecord],
        meetings: Iterable[MeetingRecord],
        window: CalendarWindow,
    ) -> List[Occurrence]:
        snapshot = self.normalizer.normalize_snapshot(templates, sessions, meetings)
        if snapshot.skipped_ids:
            logger.info(
                "Occurrence computation skipped %d unreadable record(s): %s",
                len(snapshot.skipped_ids),
                ", ".join(snapshot.skipped_ids),
            )

        targets = self.build_targets(snapshot.templates, window)
        matches = self.matcher.match_all(
            [target for target, _ in targets], snapshot.sessions
        )

        scheduled = [
            self._to_occurrence(template, target, matches.get(target.key))
            for target, template in targets
        ]

        claimed = {sid for match in matches.values() for sid in match.session_ids}
        orphans = self.orphans.collect(snapshot.sessions, claimed, window)
        meetings_layer = MeetingOverlay.overlay(snapshot.meetings, window)

        occurrences = ConflictDetector.apply(scheduled + orphans + meetings_layer)
        return sorted(occurrences, key=occurrence_sort_key)

    def build_targets(
        self,
        templates: Sequence[NormalizedTemplate],
        window: CalendarWindow,
    ) -> List[tuple[MatchTarget, NormalizedTemplate]]:
        targets: List[tuple[MatchTarget, NormalizedTemplate]] = []
        for template in templates:
            for occurrence_date in self.expander.expand(template, window):
                target = MatchTarget(
                    key=build_occurrence_id(template.id, occurrence_date),
                    template_id=template.id,
                    date=occurrence_date,
                    start=datetime.combine(occurrence_date, template.start_time),
                    participant_ids=template.participant_ids,
                )
                targets.append((target, template))
        return targets

    def match_snapshot(
        self,
        snapshot: NormalizedSnapshot,
        window: CalendarWindow,
        include_cancelled: bool = False,
    ) -> List[tuple[NormalizedTemplate, MatchTarget, Optional[MatchResult]]]:
        """
        Per-template view used by reporting: every (template, date) pair in the
        window together with its match, cancelled dates optionally included.
        """
        live = self.build_targets(snapshot.templates, window)
        matches = self.matcher.match_all([t for t, _ in live], snapshot.sessions)

        rows: List[tuple[NormalizedTemplate, MatchTarget, Optional[MatchResult]]] = []
        for template in snapshot.templates:
            for occurrence_date in self.expander.expand(template, window, include_cancelled=include_cancelled):
                if not window.contains(occurrence_date):
                    continue
                key = build_occurrence_id(template.id, occurrence_date)
                target = MatchTarget(
                    key=key,
                    template_id=template.id,
                    date=occurrence_date,
                    start=datetime.combine(occurrence_date, template.start_time),
                    participant_ids=template.participant_ids,
                )
                match = None if template.is_cancelled(occurrence_date) else matches.get(key)
                rows.append((template, target, match))
        return rows

    def _to_occurrence(
        self,
        template: NormalizedTemplate,
        target: MatchTarget,
        match: Optional[MatchResult],
    ) -> Occurrence:
        status = OccurrenceEvaluator.evaluate(template, target.date, match)
        return Occurrence(
            id=target.key,
            kind=OccurrenceKind.SCHEDULED,
            template_id=template.id,
            date=target.date,
            start_time=template.start_time,
            end_time=template.end_time,
            participant_ids=list(template.participant_ids),
            is_logged=match is not None,
            is_missed=bool(match and match.missed),
            status=status,
            matched_sessions=[s.source for s in match.sessions] if match else [],
        )


def compute_occurrences(
    templates: Iterable[ScheduleTemplate],
    sessions: Iterable[SessionRecord],
    meetings: Iterable[MeetingRecord],
    window: CalendarWindow,
    settings: EngineSettings | None = None,
) -> List[Occurrence]:
    """
    Compute the calendar's occurrences for `window`. Pure and deterministic.
    """
    return OccurrenceEngine(settings).compute(templates, sessions, meetings, window)


def revalidate_occurrences(
    occurrences: Sequence[Occurrence],
    sessions: Iterable[SessionRecord],
) -> List[Occurrence]:
    """
    Clear matched-session references that no longer exist in `sessions`.

    Scheduled occurrences with a stale reference fall back to unmatched,
    orphans whose record is gone are dropped. Conflicts are recomputed.
    """
    known = {s.id for s in sessions}
    kept: List[Occurrence] = []
    for occurrence in occurrences:
        stale = [sid for sid in occurrence.matched_session_ids if sid not in known]
        if not stale:
            kept.append(occurrence)
            continue

        logger.debug("Occurrence %s references deleted session(s) %s", occurrence.id, stale)
        if occurrence.kind == OccurrenceKind.ORPHAN:
            continue
        kept.append(
            occurrence.model_copy(
                update={
                    "is_logged": False,
                    "is_missed": False,
                    "matched_sessions": [],
                    "status": OccurrenceStatus.SCHEDULED,
                }
            )
        )
    return ConflictDetector.apply(kept)


class OccurrenceCache:
    """
    Bounded LRU memo for `compute_occurrences`, keyed by a digest of the
    input content. Repeated renders without data changes reuse the result.
    """

    def __init__(self, maxsize: int = 32, settings: EngineSettings | None = None) -> None:
        self.maxsize = maxsize
        self.engine = OccurrenceEngine(settings)
        self._entries: "OrderedDict[str, tuple[Occurrence, ...]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def content_key(
        self,
        templates: Sequence[ScheduleTemplate],
        sessions: Sequence[SessionRecord],
        meetings: Sequence[MeetingRecord],
        window: CalendarWindow,
    ) -> str:
        payload: Dict[str, object] = {
            "templates": [t.model_dump(mode="json") for t in templates],
            "sessions": [s.model_dump(mode="json") for s in sessions],
            "meetings": [m.model_dump(mode="json") for m in meetings],
            "window": window.model_dump(mode="json"),
            "settings": asdict(self.engine.settings),
        }
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    def get(
        self,
        templates: Sequence[ScheduleTemplate],
        sessions: Sequence[SessionRecord],
        meetings: Sequence[MeetingRecord],
        window: CalendarWindow,
    ) -> List[Occurrence]:
        key = self.content_key(templates, sessions, meetings, window)
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            self._entries.move_to_end(key)
            return list(cached)

        self.misses += 1
        result = self.engine.compute(templates, sessions, meetings, window)
        if self.maxsize > 0:
            self._entries[key] = tuple(result)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)
        return result

    def clear(self) -> None:
        self._entries.clear()
