# caseload_calendar/services/conflict_detector.py
from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Sequence, Set

from caseload_calendar.schemas.occurrence import Occurrence


def overlaps(a: Occurrence, b: Occurrence) -> bool:
    """
    Open-interval overlap on the same date. Touching intervals
    (10:00-10:30 and 10:30-11:00) do not overlap.
    """
    return a.date == b.date and a.start_time < b.end_time and b.start_time < a.end_time


class ConflictDetector:
    """
    Flags occurrences that overlap another occurrence sharing at least one
    student on the same date. Both sides of every overlapping pair are marked.

    Meetings carry no students and never take part.
    """

    @staticmethod
    def find_conflicts(occurrences: Sequence[Occurrence]) -> Set[str]:
        by_day_and_student: Dict[tuple[date, str], List[Occurrence]] = defaultdict(list)
        for occurrence in occurrences:
            if occurrence.is_meeting:
                continue
            for participant_id in set(occurrence.participant_ids):
                by_day_and_student[(occurrence.date, participant_id)].append(occurrence)

        conflicting: Set[str] = set()
        for bucket in by_day_and_student.values():
            if len(bucket) < 2:
                continue
            for i, first in enumerate(bucket):
                for second in bucket[i + 1:]:
                    if first.id != second.id and overlaps(first, second):
                        conflicting.add(first.id)
                        conflicting.add(second.id)
        return conflicting

    @classmethod
    def apply(cls, occurrences: Sequence[Occurrence]) -> List[Occurrence]:
        conflicting = cls.find_conflicts(occurrences)
        return [
            o.model_copy(update={"has_conflict": o.id in conflicting})
            for o in occurrences
        ]
