# File: /tests/test_api_records.py | Version: 1.0 | Title: Reference API: records, listing through views, bulk ops, health
from __future__ import annotations

import pytest


def _data(r):
    body = r.json()
    assert body["success"] is True, body
    return body["data"]


def _ids(page):
    return [r["properties"]["title"] for r in page["records"]]


@pytest.fixture
def seeded(client):
    rows = [
        {"title": "Write docs", "status": "done", "priority": 2, "done": True, "labels": ["feature"]},
        {"title": "Fix login", "status": "todo", "priority": 3, "due": "2026-03-01", "labels": ["bug"]},
        {"title": "Add export", "status": "todo", "priority": 1, "due": "2026-01-15"},
    ]
    created = []
    for values in rows:
        r = client.post("/tasks/records", json={"properties": values})
        assert r.status_code == 201, r.text
        created.append(_data(r))
    return created


def test_list_without_view_returns_stored_order(client, seeded):
    page = _data(client.get("/tasks/records"))
    assert set(page) == {"records", "total", "page", "limit", "hasNext", "hasPrev"}
    assert _ids(page) == ["Write docs", "Fix login", "Add export"]
    assert page["total"] == 3
    assert page["hasNext"] is False and page["hasPrev"] is False


def test_list_through_saved_view_applies_filters_and_sorts(client, seeded):
    page = _data(client.get("/tasks/records", params={"viewId": "open"}))
    assert _ids(page) == ["Add export", "Fix login"]


def test_query_filters_and_sorts(client, seeded):
    params = [
        ("filters[status]", "todo"),
        ("sorts[0][field]", "priority"),
        ("sorts[0][direction]", "desc"),
    ]
    assert _ids(_data(client.get("/tasks/records", params=params))) == ["Fix login", "Add export"]
    assert _ids(_data(client.get("/tasks/records", params={"filters[labels]": "bug"}))) == ["Fix login"]
    assert _ids(_data(client.get("/tasks/records", params={"filters[done]": "true"}))) == ["Write docs"]
    assert _ids(_data(client.get("/tasks/records", params={"filters[priority]": "1"}))) == ["Add export"]


def test_query_sorts_override_view_sorts(client, seeded):
    params = {"viewId": "open", "sorts[0][field]": "title"}
    assert _ids(_data(client.get("/tasks/records", params=params))) == ["Add export", "Fix login"]
    params["sorts[0][direction]"] = "desc"
    assert _ids(_data(client.get("/tasks/records", params=params))) == ["Fix login", "Add export"]


def test_search_matches_display_text(client, seeded):
    assert _ids(_data(client.get("/tasks/records", params={"search": "LOGIN"}))) == ["Fix login"]
    # Option names are searched, not ids
    assert _ids(_data(client.get("/tasks/records", params={"search": "Todo"}))) == ["Fix login", "Add export"]


def test_pagination(client, seeded):
    first = _data(client.get("/tasks/records", params={"limit": 2}))
    assert len(first["records"]) == 2
    assert first["hasNext"] is True and first["hasPrev"] is False
    second = _data(client.get("/tasks/records", params={"limit": 2, "page": 2}))
    assert _ids(second) == ["Add export"]
    assert second["hasNext"] is False and second["hasPrev"] is True


def test_unknown_view_is_404(client, seeded):
    assert client.get("/tasks/records", params={"viewId": "nope"}).status_code == 404


def test_calendar_ignores_search(client):
    r = client.post("/calendar/records", json={"properties": {"title": "Standup", "start": "2026-10-19"}})
    assert r.status_code == 201, r.text
    page = _data(client.get("/calendar/records", params={"search": "no-such-text"}))
    assert page["total"] == 1


def test_create_validates_required_and_typed_values(client):
    r = client.post("/tasks/records", json={"properties": {"priority": 1}})
    assert r.status_code == 422
    assert "title" in r.json()["error"]["errors"]

    r = client.post("/tasks/records", json={"properties": {"title": "X", "priority": "many"}})
    assert r.status_code == 422
    assert "priority" in r.json()["error"]["errors"]

    r = client.post("/tasks/records", json={"properties": {"title": "X", "ghost": 1}})
    assert r.status_code == 422


def test_update_and_replace_record(client, seeded):
    rec = seeded[1]
    patched = _data(
        client.patch(f"/tasks/records/{rec['id']}", json={"properties": {"priority": 5}}, headers={"X-User-Id": "u1"})
    )
    assert patched["properties"]["priority"] == 5
    assert patched["properties"]["title"] == "Fix login"
    assert patched["lastEditedBy"] == "u1"

    replaced = _data(client.put(f"/tasks/records/{rec['id']}", json={"properties": {"title": "Fix SSO"}}))
    assert replaced["properties"] == {"title": "Fix SSO"}

    r = client.patch(f"/tasks/records/{rec['id']}", json={"properties": {"title": ""}})
    assert r.status_code == 422


def test_replace_keeps_values_of_deleted_properties(client, seeded):
    rec = seeded[1]
    assert client.delete("/tasks/properties/labels").status_code == 200
    replaced = _data(client.put(f"/tasks/records/{rec['id']}", json={"properties": {"title": "Fix login"}}))
    assert replaced["properties"]["labels"] == ["bug"]


def test_delete_record(client, seeded):
    rid = seeded[0]["id"]
    assert _data(client.delete(f"/tasks/records/{rid}"))["id"] == rid
    assert client.get(f"/tasks/records/{rid}").status_code == 404


def test_bulk_update_and_delete(client, seeded):
    ids = [seeded[0]["id"], seeded[1]["id"]]
    updated = _data(client.patch("/tasks/records/bulk", json={"ids": ids, "properties": {"priority": 9}}))
    assert [r["properties"]["priority"] for r in updated] == [9, 9]

    r = client.request("DELETE", "/tasks/records/bulk", json={"ids": ids})
    assert _data(r) == {"deleted": 2}
    assert _data(client.get("/tasks/records"))["total"] == 1


def test_bulk_requires_ids_and_capability(client, seeded):
    assert client.patch("/tasks/records/bulk", json={"ids": [], "properties": {}}).status_code == 422
    r = client.request("DELETE", "/calendar/records/bulk", json={"ids": ["x"]})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "UNSUPPORTED_OPERATION"


def test_frozen_property_blocks_value_edits(client, seeded):
    _data(client.patch("/tasks/properties/priority/freeze", json={"frozen": True, "allowEdit": False}))
    r = client.patch(f"/tasks/records/{seeded[0]['id']}", json={"properties": {"priority": 7}})
    assert r.status_code == 403
    # Unchanged values pass the guard
    r = client.patch(f"/tasks/records/{seeded[0]['id']}", json={"properties": {"priority": 2, "title": "Docs"}})
    assert r.status_code == 200


def test_health_endpoints(client):
    assert client.get("/healthz").json() == {"status": "ok"}
    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.json()["db"] == "ok"
