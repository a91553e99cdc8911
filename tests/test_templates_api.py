# tests/test_templates_api.py
from http import HTTPStatus


def _build_template_payload(
    template_id: str | None = "tpl-1",
    participant_ids: list[str] | None = None,
    recurrence_pattern: str = "weekly",
    days_of_week: list[int] | None = None,
    start_date: str = "2024-01-01",
    start_time: str = "10:00",
    **extra,
) -> dict:
    payload = {
        "participant_ids": participant_ids or ["stu-1"],
        "recurrence_pattern": recurrence_pattern,
        "days_of_week": days_of_week if days_of_week is not None else [1, 3],
        "start_date": start_date,
        "start_time": start_time,
        **extra,
    }
    if template_id is not None:
        payload["id"] = template_id
    return payload


def test_create_template_success(client):
    response = client.post("/templates", json=_build_template_payload(end_time="10:45"))
    assert response.status_code == HTTPStatus.CREATED

    data = response.json()
    assert data["id"] == "tpl-1"
    assert data["participant_ids"] == ["stu-1"]
    assert data["recurrence_pattern"] == "weekly"
    assert data["end_time"] == "10:45"
    assert data["active"] is True
    assert data["date_created"] is not None


def test_create_template_generates_id(client):
    response = client.post("/templates", json=_build_template_payload(template_id=None))
    assert response.status_code == HTTPStatus.CREATED
    assert response.json()["id"]


def test_create_template_duplicate_id_rejected(client):
    first = client.post("/templates", json=_build_template_payload())
    assert first.status_code == HTTPStatus.CREATED

    second = client.post("/templates", json=_build_template_payload())
    assert second.status_code == HTTPStatus.CONFLICT
    assert "already exists" in second.json()["detail"]


def test_create_template_with_bad_time_rejected(client):
    response = client.post("/templates", json=_build_template_payload(start_time="soon"))
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_list_templates_filter_only_active(client):
    client.post("/templates", json=_build_template_payload("on"))
    client.post("/templates", json=_build_template_payload("off", active=False))

    response = client.get("/templates?only_active=true")
    assert response.status_code == HTTPStatus.OK
    assert [t["id"] for t in response.json()] == ["on"]

    response = client.get("/templates")
    assert [t["id"] for t in response.json()] == ["off", "on"]


def test_get_and_patch_template(client):
    client.post("/templates", json=_build_template_payload())

    fetched = client.get("/templates/tpl-1")
    assert fetched.status_code == HTTPStatus.OK
    assert fetched.json()["start_time"] == "10:00"

    patched = client.patch("/templates/tpl-1", json={"start_time": "11:00", "notes": "moved"})
    assert patched.status_code == HTTPStatus.OK
    assert patched.json()["status"] == "applied"
    assert patched.json()["updated_template_ids"] == ["tpl-1"]

    fetched = client.get("/templates/tpl-1").json()
    assert fetched["start_time"] == "11:00"
    assert fetched["notes"] == "moved"
    # untouched fields stay as they were
    assert fetched["days_of_week"] == [1, 3]


def test_patch_with_unparsable_date_is_conflict(client):
    client.post("/templates", json=_build_template_payload())

    response = client.patch("/templates/tpl-1", json={"start_date": "next monday"})
    assert response.status_code == HTTPStatus.CONFLICT


def test_unknown_template_is_404(client):
    assert client.get("/templates/nope").status_code == HTTPStatus.NOT_FOUND
    assert client.patch("/templates/nope", json={"notes": "x"}).status_code == HTTPStatus.NOT_FOUND
    assert client.delete("/templates/nope").status_code == HTTPStatus.NOT_FOUND


def test_delete_template(client):
    client.post("/templates", json=_build_template_payload())

    response = client.delete("/templates/tpl-1")
    assert response.status_code == HTTPStatus.NO_CONTENT
    assert client.get("/templates/tpl-1").status_code == HTTPStatus.NOT_FOUND
