# tests/test_conflict_detector.py
from datetime import date, time

from caseload_calendar.schemas.occurrence import Occurrence, OccurrenceKind, OccurrenceStatus
from caseload_calendar.services.conflict_detector import ConflictDetector, overlaps


def _occurrence(occ_id, start, end, participants, day=date(2024, 1, 10), is_meeting=False):
    return Occurrence(
        id=occ_id,
        kind=OccurrenceKind.MEETING if is_meeting else OccurrenceKind.SCHEDULED,
        template_id=None if is_meeting else occ_id.split(":")[0],
        date=day,
        start_time=start,
        end_time=end,
        participant_ids=participants,
        is_meeting=is_meeting,
        status=OccurrenceStatus.SCHEDULED,
    )


def test_overlapping_occurrences_for_same_student_both_flagged():
    first = _occurrence("a:2024-01-10", time(10, 0), time(10, 30), ["stu-1"])
    second = _occurrence("b:2024-01-10", time(10, 15), time(10, 45), ["stu-1"])

    flagged = ConflictDetector.apply([first, second])

    assert [o.has_conflict for o in flagged] == [True, True]


def test_touching_intervals_do_not_conflict():
    first = _occurrence("a:2024-01-10", time(10, 0), time(10, 30), ["stu-1"])
    second = _occurrence("b:2024-01-10", time(10, 30), time(11, 0), ["stu-1"])

    assert not overlaps(first, second)
    assert ConflictDetector.find_conflicts([first, second]) == set()


def test_different_students_do_not_conflict():
    first = _occurrence("a:2024-01-10", time(10, 0), time(10, 30), ["stu-1"])
    second = _occurrence("b:2024-01-10", time(10, 15), time(10, 45), ["stu-2"])

    assert ConflictDetector.find_conflicts([first, second]) == set()


def test_different_dates_do_not_conflict():
    first = _occurrence("a:2024-01-10", time(10, 0), time(10, 30), ["stu-1"])
    second = _occurrence("b:2024-01-11", time(10, 0), time(10, 30), ["stu-1"], day=date(2024, 1, 11))

    assert ConflictDetector.find_conflicts([first, second]) == set()


def test_group_occurrence_conflicts_through_any_shared_student():
    group = _occurrence("g:2024-01-10", time(9, 0), time(10, 0), ["stu-1", "stu-2"])
    single = _occurrence("s:2024-01-10", time(9, 30), time(10, 0), ["stu-2"])
    unrelated = _occurrence("u:2024-01-10", time(9, 30), time(10, 0), ["stu-3"])

    assert ConflictDetector.find_conflicts([group, single, unrelated]) == {
        "g:2024-01-10",
        "s:2024-01-10",
    }


def test_meetings_never_take_part():
    meeting = _occurrence("meeting:m1", time(10, 0), time(11, 0), [], is_meeting=True)
    session = _occurrence("a:2024-01-10", time(10, 0), time(10, 30), ["stu-1"])

    assert ConflictDetector.find_conflicts([meeting, session]) == set()
