# tests/test_schedule_summary_service.py
from datetime import date

from caseload_calendar.schemas.meeting import MeetingRecord
from caseload_calendar.schemas.occurrence import CalendarWindow
from caseload_calendar.schemas.schedule_template import ScheduleTemplate
from caseload_calendar.schemas.session_record import SessionRecord
from caseload_calendar.services.schedule_summary import compute_schedule_summary
from caseload_calendar.services.stores import ScheduleSnapshot

JANUARY = CalendarWindow(start=date(2024, 1, 1), end=date(2024, 1, 31))


def _snapshot() -> ScheduleSnapshot:
    weekly = ScheduleTemplate(
        id="a",
        participant_ids=["stu-1"],
        recurrence_pattern="weekly",
        days_of_week=[1, 3],
        start_date="2024-01-01",
        end_date="2024-01-31",
        start_time="10:00",
        cancelled_dates=["2024-01-03"],
    )
    one_time = ScheduleTemplate(
        id="b",
        participant_ids=["stu-1"],
        recurrence_pattern="none",
        start_date="2024-01-22",
        start_time="10:15",
    )
    sessions = [
        SessionRecord(id="s1", participant_id="stu-1", date="2024-01-01T10:00", template_id="a"),
        SessionRecord(id="s2", participant_id="stu-1", date="2024-01-08T10:00", template_id="a", missed=True),
        SessionRecord(id="s3", participant_id="stu-9", date="2024-01-05T09:00"),
    ]
    meetings = [MeetingRecord(id="m1", title="IEP", date="2024-01-10T13:00")]
    return ScheduleSnapshot(templates=[weekly, one_time], sessions=sessions, meetings=meetings)


def test_summary_counts_per_template():
    summary = compute_schedule_summary(_snapshot(), JANUARY, as_of=date(2024, 1, 15))

    assert [t.template_id for t in summary.templates] == ["a", "b"]
    weekly = summary.templates[0]

    assert weekly.total_dates == 10
    assert weekly.cancelled_count == 1
    assert weekly.logged_count == 1
    assert weekly.missed_count == 1
    assert weekly.scheduled_count == 7
    # logged / (logged + missed + Jan 10 still scheduled)
    assert weekly.completion_pct == 33.33


def test_summary_nothing_due_gives_zero_completion():
    summary = compute_schedule_summary(_snapshot(), JANUARY, as_of=date(2024, 1, 15))
    one_time = summary.templates[1]

    assert one_time.total_dates == 1
    assert one_time.scheduled_count == 1
    assert one_time.completion_pct == 0.0


def test_summary_counts_orphans_meetings_and_conflicts():
    summary = compute_schedule_summary(_snapshot(), JANUARY, as_of=date(2024, 1, 15))

    assert summary.orphan_count == 1
    assert summary.meeting_count == 1
    # a and b overlap on Jan 22 for stu-1
    assert summary.conflict_count == 2
    assert summary.as_of == date(2024, 1, 15)


def test_summary_skips_templates_without_dates_in_range():
    february = CalendarWindow(start=date(2024, 2, 1), end=date(2024, 2, 29))
    summary = compute_schedule_summary(_snapshot(), february, as_of=date(2024, 2, 1))

    assert summary.templates == []
    assert summary.orphan_count == 0
