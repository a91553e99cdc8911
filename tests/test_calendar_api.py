# tests/test_calendar_api.py
from http import HTTPStatus


def _create_weekly_template(client, template_id: str = "tpl-1", **extra) -> None:
    payload = {
        "id": template_id,
        "participant_ids": ["stu-1"],
        "recurrence_pattern": "weekly",
        "days_of_week": [1, 3],
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "start_time": "10:00",
        **extra,
    }
    response = client.post("/templates", json=payload)
    assert response.status_code == HTTPStatus.CREATED


def _occurrences(client, from_date="2024-01-08", to_date="2024-01-14") -> dict:
    response = client.get(
        "/calendar/occurrences", params={"from_date": from_date, "to_date": to_date}
    )
    assert response.status_code == HTTPStatus.OK
    return {o["id"]: o for o in response.json()}


def test_occurrences_for_january_week(client):
    _create_weekly_template(client)

    occurrences = _occurrences(client)

    assert list(occurrences) == ["tpl-1:2024-01-08", "tpl-1:2024-01-10"]
    assert occurrences["tpl-1:2024-01-10"]["status"] == "SCHEDULED"
    assert occurrences["tpl-1:2024-01-10"]["end_time"] == "10:30:00"


def test_logging_and_deleting_session_updates_calendar(client):
    _create_weekly_template(client)

    created = client.post(
        "/sessions",
        json={
            "id": "s1",
            "participant_id": "stu-1",
            "date": "2024-01-10T10:05",
            "template_id": "tpl-1",
        },
    )
    assert created.status_code == HTTPStatus.CREATED

    occurrence = _occurrences(client)["tpl-1:2024-01-10"]
    assert occurrence["is_logged"] is True
    assert occurrence["status"] == "LOGGED"
    assert [s["id"] for s in occurrence["matched_sessions"]] == ["s1"]

    assert client.delete("/sessions/s1").status_code == HTTPStatus.NO_CONTENT

    occurrence = _occurrences(client)["tpl-1:2024-01-10"]
    assert occurrence["is_logged"] is False
    assert occurrence["status"] == "SCHEDULED"


def test_session_with_bad_date_is_rejected(client):
    response = client.post(
        "/sessions", json={"participant_id": "stu-1", "date": "last tuesday"}
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_meetings_are_overlaid(client):
    _create_weekly_template(client)
    created = client.post(
        "/meetings",
        json={"id": "m1", "title": "Annual IEP", "date": "2024-01-10T10:00", "end_time": "11:00"},
    )
    assert created.status_code == HTTPStatus.CREATED

    occurrences = _occurrences(client)
    assert occurrences["meeting:m1"]["is_meeting"] is True
    assert occurrences["tpl-1:2024-01-10"]["has_conflict"] is False


def test_cancel_occurrence_and_repeat_is_noop(client):
    _create_weekly_template(client)

    first = client.post(
        "/calendar/templates/tpl-1/cancel", params={"occurrence_date": "2024-01-10"}
    )
    assert first.status_code == HTTPStatus.OK
    assert first.json()["status"] == "applied"
    assert "tpl-1:2024-01-10" not in _occurrences(client)

    second = client.post(
        "/calendar/templates/tpl-1/cancel", params={"occurrence_date": "2024-01-10"}
    )
    assert second.status_code == HTTPStatus.OK
    assert second.json()["status"] == "noop"


def test_cancel_logged_occurrence_is_conflict(client):
    _create_weekly_template(client)
    client.post(
        "/sessions",
        json={"participant_id": "stu-1", "date": "2024-01-10T10:00", "template_id": "tpl-1"},
    )

    response = client.post(
        "/calendar/templates/tpl-1/cancel", params={"occurrence_date": "2024-01-10"}
    )
    assert response.status_code == HTTPStatus.CONFLICT


def test_cancel_unknown_template_is_404(client):
    response = client.post(
        "/calendar/templates/nope/cancel", params={"occurrence_date": "2024-01-10"}
    )
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_cancel_day_clears_every_template(client):
    _create_weekly_template(client, "a")
    _create_weekly_template(client, "b", participant_ids=["stu-2"])

    response = client.post("/calendar/cancel-day", params={"target_date": "2024-01-10"})
    assert response.status_code == HTTPStatus.OK
    assert response.json()["updated_template_ids"] == ["a", "b"]

    remaining = _occurrences(client, "2024-01-10", "2024-01-10")
    assert remaining == {}


def test_reschedule_specific_date(client):
    _create_weekly_template(
        client,
        recurrence_pattern="specific-dates",
        days_of_week=[],
        specific_dates=["2024-01-09", "2024-01-12"],
    )

    response = client.post(
        "/calendar/occurrences/tpl-1:2024-01-09/reschedule", params={"new_date": "2024-01-11"}
    )
    assert response.status_code == HTTPStatus.OK
    assert list(_occurrences(client)) == ["tpl-1:2024-01-11", "tpl-1:2024-01-12"]


def test_reschedule_onto_taken_specific_date_is_conflict(client):
    _create_weekly_template(
        client,
        recurrence_pattern="specific-dates",
        days_of_week=[],
        specific_dates=["2024-01-10", "2024-01-12"],
    )

    response = client.post(
        "/calendar/occurrences/tpl-1:2024-01-10/reschedule", params={"new_date": "2024-01-12"}
    )
    assert response.status_code == HTTPStatus.CONFLICT
    assert list(_occurrences(client)) == ["tpl-1:2024-01-10", "tpl-1:2024-01-12"]


def test_reschedule_weekly_is_conflict(client):
    _create_weekly_template(client)

    response = client.post(
        "/calendar/occurrences/tpl-1:2024-01-10/reschedule", params={"new_date": "2024-01-11"}
    )
    assert response.status_code == HTTPStatus.CONFLICT


def test_reschedule_malformed_id_is_bad_request(client):
    response = client.post(
        "/calendar/occurrences/tpl-1:someday/reschedule", params={"new_date": "2024-01-11"}
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_inverted_window_is_bad_request(client):
    response = client.get(
        "/calendar/occurrences", params={"from_date": "2024-01-14", "to_date": "2024-01-08"}
    )
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_schedule_summary_report(client):
    _create_weekly_template(client, cancelled_dates=["2024-01-03"])
    client.post(
        "/sessions",
        json={"participant_id": "stu-1", "date": "2024-01-01T10:00", "template_id": "tpl-1"},
    )

    response = client.get(
        "/reports/schedule-summary",
        params={"from_date": "2024-01-01", "to_date": "2024-01-31", "as_of": "2024-01-09"},
    )
    assert response.status_code == HTTPStatus.OK

    data = response.json()
    assert data["as_of"] == "2024-01-09"
    template = data["templates"][0]
    assert template["total_dates"] == 10
    assert template["logged_count"] == 1
    assert template["cancelled_count"] == 1
    # Jan 1 logged, Jan 8 still scheduled and due
    assert template["completion_pct"] == 50.0
