# caseload_calendar/services/schedule_summary.py
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date as date_type
from typing import Dict, List

from caseload_calendar.schemas.occurrence import CalendarWindow, OccurrenceKind, OccurrenceStatus
from caseload_calendar.schemas.schedule_summary import ScheduleSummary, TemplateScheduleSummary
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.occurrence_engine import OccurrenceEngine
from caseload_calendar.services.occurrence_evaluator import OccurrenceEvaluator
from caseload_calendar.services.stores import ScheduleSnapshot

logger = logging.getLogger(__name__)


def _completion_pct(logged: int, missed: int, past_scheduled: int) -> float:
    due = logged + missed + past_scheduled
    if due == 0:
        return 0.0
    return round((logged / float(due)) * 100.0, 2)


def compute_schedule_summary(
    snapshot: ScheduleSnapshot,
    window: CalendarWindow,
    as_of: date_type | None = None,
    settings: EngineSettings | None = None,
) -> ScheduleSummary:
    """
    Summarize occurrence outcomes per template over [window.start, window.end].

    Steps
    -----
    1) Expand every template over the window, cancelled dates included.
    2) Classify each (template, date) pair:
        - CANCELLED
        - LOGGED
        - MISSED
        - SCHEDULED
    3) Compute per template:
        - total_dates = every classified date
        - completion_pct = LOGGED / (LOGGED + MISSED + SCHEDULED before as_of) * 100
    4) Count in-window orphans, meetings and conflicting occurrences from the
       full occurrence computation.

    Templates with no date in the window are left out.
    """
    as_of = as_of or date_type.today()
    engine = OccurrenceEngine(settings)

    normalized = engine.normalizer.normalize_snapshot(
        snapshot.templates, snapshot.sessions, snapshot.meetings
    )

    counts: Dict[str, Counter] = defaultdict(Counter)
    participants: Dict[str, List[str]] = {}
    for template, target, match in engine.match_snapshot(normalized, window, include_cancelled=True):
        status = OccurrenceEvaluator.evaluate(template, target.date, match)
        bucket = counts[template.id]
        bucket[status] += 1
        if status == OccurrenceStatus.SCHEDULED and target.date < as_of:
            bucket["past_scheduled"] += 1
        participants[template.id] = list(template.participant_ids)

    summaries: list[TemplateScheduleSummary] = []
    for template_id in sorted(counts):
        bucket = counts[template_id]
        logged = bucket[OccurrenceStatus.LOGGED]
        missed = bucket[OccurrenceStatus.MISSED]
        scheduled = bucket[OccurrenceStatus.SCHEDULED]
        cancelled = bucket[OccurrenceStatus.CANCELLED]

        summaries.append(
            TemplateScheduleSummary(
                template_id=template_id,
                participant_ids=participants[template_id],
                total_dates=logged + missed + scheduled + cancelled,
                scheduled_count=scheduled,
                logged_count=logged,
                missed_count=missed,
                cancelled_count=cancelled,
                completion_pct=_completion_pct(logged, missed, bucket["past_scheduled"]),
            )
        )

    in_window = [
        o
        for o in engine.compute(snapshot.templates, snapshot.sessions, snapshot.meetings, window)
        if window.contains(o.date)
    ]

    summary = ScheduleSummary(
        start_date=window.start,
        end_date=window.end,
        as_of=as_of,
        templates=summaries,
        orphan_count=sum(1 for o in in_window if o.kind == OccurrenceKind.ORPHAN),
        meeting_count=sum(1 for o in in_window if o.kind == OccurrenceKind.MEETING),
        conflict_count=sum(1 for o in in_window if o.has_conflict),
    )
    logger.debug(
        "Schedule summary %s..%s: %d template(s), %d orphan(s)",
        window.start,
        window.end,
        len(summaries),
        summary.orphan_count,
    )
    return summary
