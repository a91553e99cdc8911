# tests/test_input_normalizer.py
import logging
from datetime import date, datetime, time

import pytest
from dateutil import tz

from caseload_calendar.schemas.meeting import MeetingRecord
from caseload_calendar.schemas.schedule_template import ScheduleTemplate
from caseload_calendar.schemas.session_record import SessionRecord
from caseload_calendar.services.engine_settings import EngineSettings
from caseload_calendar.services.input_normalizer import (
    InputNormalizer,
    add_minutes,
    parse_local_datetime,
    to_stored_weekday,
)


def _template(**overrides) -> ScheduleTemplate:
    data = {
        "id": "tpl-1",
        "participant_ids": ["stu-1"],
        "recurrence_pattern": "weekly",
        "days_of_week": [1, 3],
        "start_date": "2024-01-01",
        "start_time": "10:00",
    }
    data.update(overrides)
    return ScheduleTemplate(**data)


def test_explicit_end_time_wins_over_duration():
    normalized = InputNormalizer().normalize_template(
        _template(end_time="10:45", duration_minutes=15)
    )
    assert normalized.end_time == time(10, 45)


def test_duration_used_when_end_time_missing():
    normalized = InputNormalizer().normalize_template(_template(duration_minutes=50))
    assert normalized.end_time == time(10, 50)


def test_default_span_when_neither_end_nor_duration():
    normalized = InputNormalizer().normalize_template(_template())
    assert normalized.end_time == time(10, 30)


def test_default_span_is_configurable():
    normalizer = InputNormalizer(EngineSettings(default_duration_minutes=45))
    assert normalizer.normalize_template(_template()).end_time == time(10, 45)


def test_end_before_start_falls_back_to_duration():
    normalized = InputNormalizer().normalize_template(
        _template(end_time="09:00", duration_minutes=20)
    )
    assert normalized.end_time == time(10, 20)


def test_span_crossing_midnight_is_clamped():
    normalized = InputNormalizer().normalize_template(
        _template(start_time="23:45", duration_minutes=60)
    )
    assert normalized.end_time == time(23, 59)
    assert add_minutes(time(23, 50), 30) == time(23, 59)


def test_unparsable_template_is_skipped_with_warning(caplog):
    caplog.set_level(logging.WARNING, logger="caseload_calendar.services.input_normalizer")
    snapshot = InputNormalizer().normalize_snapshot(
        [_template(id="bad", start_date="not-a-date"), _template(id="good")],
        [],
        [],
    )

    assert [t.id for t in snapshot.templates] == ["good"]
    assert snapshot.skipped_ids == ("bad",)
    assert "Skipping schedule template bad" in caplog.text


def test_sessions_keep_creation_order_and_skip_bad_dates():
    sessions = [
        SessionRecord(id="s1", participant_id="stu-1", date="2024-01-10T10:05"),
        SessionRecord(id="s2", participant_id="stu-1", date="yesterday"),
        SessionRecord(id="s3", participant_id="stu-2", date="2024-01-10T11:00", end_time="11:40"),
    ]
    snapshot = InputNormalizer().normalize_snapshot([], sessions, [])

    assert [(s.id, s.position) for s in snapshot.sessions] == [("s1", 0), ("s3", 2)]
    assert snapshot.sessions[1].end_time == time(11, 40)
    assert snapshot.skipped_ids == ("s2",)


def test_offset_aware_datetimes_without_zone_keep_wall_clock_time():
    assert parse_local_datetime("2024-01-10T10:05:00Z") == datetime(2024, 1, 10, 10, 5)
    assert parse_local_datetime("2024-01-10T10:05:00+02:00") == datetime(2024, 1, 10, 10, 5)
    assert parse_local_datetime("2024-01-10") == datetime(2024, 1, 10, 0, 0)


def test_utc_timestamps_are_converted_to_the_calendar_zone():
    chicago = tz.gettz("America/Chicago")

    assert parse_local_datetime("2024-01-11T00:35:00.000Z", chicago) == datetime(2024, 1, 10, 18, 35)
    assert parse_local_datetime("2024-01-10T18:35", chicago) == datetime(2024, 1, 10, 18, 35)


def test_session_is_normalized_into_configured_timezone():
    normalizer = InputNormalizer(EngineSettings(timezone="America/Chicago"))
    session = normalizer.normalize_session(
        SessionRecord(
            id="s1",
            participant_id="stu-1",
            date="2024-01-11T00:35:00.000Z",
            end_time="2024-01-11T01:05:00.000Z",
        ),
        0,
    )

    assert session.date == date(2024, 1, 10)
    assert session.start.time() == time(18, 35)
    assert session.end_time == time(19, 5)


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValueError):
        EngineSettings(timezone="Mars/Olympus_Mons")


def test_session_end_defaults_to_start_plus_span():
    normalizer = InputNormalizer()
    session = normalizer.normalize_session(
        SessionRecord(id="s1", participant_id="stu-1", date="2024-01-10T09:15"), 0
    )
    assert normalizer.session_end(session) == time(9, 45)


def test_session_end_accepts_full_datetime():
    normalizer = InputNormalizer()
    session = normalizer.normalize_session(
        SessionRecord(
            id="s1",
            participant_id="stu-1",
            date="2024-01-10T09:15",
            end_time="2024-01-10T09:55:00",
        ),
        0,
    )
    assert normalizer.session_end(session) == time(9, 55)


def test_meeting_without_end_gets_default_span():
    meeting = InputNormalizer().normalize_meeting(
        MeetingRecord(id="m1", title="IEP", date="2024-01-10T13:00")
    )
    assert meeting.date == date(2024, 1, 10)
    assert meeting.end_time == time(13, 30)


def test_weekday_numbering_starts_on_sunday():
    assert to_stored_weekday(date(2024, 1, 7)) == 0  # Sunday
    assert to_stored_weekday(date(2024, 1, 8)) == 1  # Monday
    assert to_stored_weekday(date(2024, 1, 13)) == 6  # Saturday


def test_out_of_range_weekdays_are_ignored():
    normalized = InputNormalizer().normalize_template(_template(days_of_week=[1, 9]))
    assert normalized.weekdays == frozenset({1})


def test_duplicate_participants_collapse_in_order():
    normalized = InputNormalizer().normalize_template(
        _template(participant_ids=["stu-2", "stu-1", "stu-2"])
    )
    assert normalized.participant_ids == ("stu-2", "stu-1")
