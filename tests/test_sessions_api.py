# tests/test_sessions_api.py
from http import HTTPStatus

import pytest


def _create_session(client, session_id: str = "s1", **extra) -> dict:
    payload = {
        "id": session_id,
        "participant_id": "stu-1",
        "date": "2024-01-10T10:05",
        **extra,
    }
    response = client.post("/sessions", json=payload)
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def test_patch_session_partial_update(client):
    _create_session(client)

    response = client.patch("/sessions/s1", json={"missed": True, "notes": "Absent"})

    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["missed"] is True
    assert data["notes"] == "Absent"
    assert data["participant_id"] == "stu-1"


@pytest.mark.parametrize("field", ["participant_id", "date", "missed", "goal_ids"])
def test_patch_session_with_null_required_field_is_bad_request(client, field):
    _create_session(client)

    response = client.patch("/sessions/s1", json={field: None})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert field in response.json()["detail"]

    stored = client.get("/sessions").json()
    assert stored[0]["participant_id"] == "stu-1"
    assert stored[0]["date"] == "2024-01-10T10:05"


def test_patch_session_can_clear_optional_field(client):
    _create_session(client, template_id="tpl-1")

    response = client.patch("/sessions/s1", json={"template_id": None})

    assert response.status_code == HTTPStatus.OK
    assert response.json()["template_id"] is None


def test_patch_unknown_session_is_404(client):
    response = client.patch("/sessions/nope", json={"missed": True})
    assert response.status_code == HTTPStatus.NOT_FOUND


def test_patch_meeting_with_null_title_is_bad_request(client):
    created = client.post(
        "/meetings",
        json={"id": "m1", "title": "Annual IEP", "date": "2024-01-10T13:00"},
    )
    assert created.status_code == HTTPStatus.CREATED

    response = client.patch("/meetings/m1", json={"title": None})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert client.get("/meetings").json()[0]["title"] == "Annual IEP"
