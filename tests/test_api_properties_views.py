# File: /tests/test_api_properties_views.py | Version: 1.0 | Title: Reference API: module config, properties and views
from __future__ import annotations

from typing import Any, Dict


def _data(r) -> Any:
    body = r.json()
    assert body["success"] is True, body
    assert "timestamp" in body
    return body["data"]


def _error(r) -> Dict[str, Any]:
    body = r.json()
    assert body["success"] is False, body
    return body["error"]


# ---- Module config ----


def test_config_lists_capabilities_defaults_and_database(client):
    cfg = _data(client.get("/tasks/config"))
    assert cfg["module"] == "tasks"
    assert cfg["capabilities"]["supportsBulk"] is True
    assert [p["id"] for p in cfg["defaultProperties"]][:2] == ["title", "status"]
    frozen = {fp["propertyId"] for fp in cfg["frozenConfig"]["frozenProperties"]}
    assert frozen == {"title", "status"}
    assert cfg["database"]["name"] == "Tasks"
    assert cfg["database"]["frozen"] is False


def test_unknown_module_is_404(client):
    r = client.get("/nope/config")
    assert r.status_code == 404
    assert _error(r)["code"] == "NOT_FOUND"


def test_calendar_capabilities_are_narrower(client):
    caps = _data(client.get("/calendar/config"))["capabilities"]
    assert caps["supportsSearch"] is False
    assert caps["supportsBulk"] is False
    r = client.post("/calendar/views/month/duplicate")
    assert r.status_code == 400
    assert _error(r)["code"] == "UNSUPPORTED_OPERATION"


# ---- Properties ----


def test_seeded_properties_carry_frozen_flags(client):
    props = {p["id"]: p for p in _data(client.get("/tasks/properties"))}
    assert props["title"]["frozen"] is True
    assert props["title"]["allowHide"] is False
    assert props["status"]["allowDelete"] is False
    assert props["priority"]["frozen"] is False


def test_property_lifecycle(client):
    r = client.post("/books/properties", json={"name": "Pages", "type": "NUMBER"})
    assert r.status_code == 201, r.text
    created = _data(r)
    assert created["id"] == "pages"
    assert created["order"] == 8

    renamed = _data(client.patch("/books/properties/pages/name", json={"name": "Page count"}))
    assert renamed["name"] == "Page count"

    patched = _data(client.patch("/books/properties/pages", json={"description": "Hardcover"}))
    assert patched["description"] == "Hardcover"
    assert patched["name"] == "Page count"

    replaced = _data(client.put("/books/properties/pages", json={"name": "Pages", "type": "NUMBER", "required": True}))
    assert replaced["required"] is True
    assert replaced["description"] is None

    hidden = _data(client.patch("/books/properties/pages/hide", json={"hidden": True}))
    assert hidden["visible"] is False

    r = client.delete("/books/properties/pages")
    assert r.status_code == 200
    assert client.get("/books/properties/pages").status_code == 404


def test_insert_left_and_right_keep_order_equal_to_position(client):
    _data(client.post("/tasks/properties/due/insert", json={"position": "left", "property": {"id": "start", "name": "Start", "type": "DATE"}}))
    _data(client.post("/tasks/properties/due/insert", json={"position": "right", "property": {"id": "notes", "name": "Notes", "type": "TEXT"}}))
    props = _data(client.get("/tasks/properties"))
    ids = [p["id"] for p in props]
    assert ids[ids.index("start") : ids.index("start") + 3] == ["start", "due", "notes"]
    assert [p["order"] for p in props] == list(range(len(props)))


def test_duplicate_property_copies_values(client):
    rec = _data(client.post("/books/records", json={"properties": {"title": "Dune", "rating": 5}}))
    dup = _data(client.post("/books/properties/rating/duplicate", json={"name": "Rating (copy)"}))
    assert dup["id"] != "rating"
    assert dup["type"] == "NUMBER"
    got = _data(client.get(f"/books/records/{rec['id']}"))
    assert got["properties"][dup["id"]] == 5


def test_frozen_property_cannot_be_hidden_or_deleted(client):
    r = client.patch("/tasks/properties/title/hide", json={"hidden": True})
    assert r.status_code == 403
    assert _error(r)["code"] == "PERMISSION_DENIED"
    r = client.delete("/tasks/properties/status")
    assert r.status_code == 403
    assert _error(r)["message"] == "Status drives the board view"


def test_freeze_and_unfreeze_property(client):
    frozen = _data(client.patch("/tasks/properties/priority/freeze", json={"frozen": True, "allowEdit": False, "reason": "Set by PM"}))
    assert frozen["frozen"] is True
    assert frozen["allowEdit"] is False
    r = client.patch("/tasks/properties/priority/name", json={"name": "Urgency"})
    assert r.status_code == 403
    unfrozen = _data(client.patch("/tasks/properties/priority/freeze", json={"frozen": False}))
    assert unfrozen["frozen"] is False
    assert unfrozen["allowEdit"] is None


def test_type_change_rules(client):
    r = client.patch("/tasks/properties/status/type", json={"type": "NUMBER"})
    assert r.status_code == 422
    assert _error(r)["code"] == "TYPE_CONVERSION_ERROR"

    rec = _data(client.post("/books/records", json={"properties": {"title": "Emma", "status": "reading"}}))
    converted = _data(client.patch("/books/properties/status/type", json={"type": "MULTI_SELECT"}))
    assert converted["type"] == "MULTI_SELECT"
    assert _data(client.get(f"/books/records/{rec['id']}"))["properties"]["status"] == ["reading"]


def test_invalid_property_body_is_422_with_field_errors(client):
    r = client.post("/tasks/properties", json={"name": "Stage", "type": "SELECT"})
    assert r.status_code == 422
    assert _error(r)["code"] == "VALIDATION_ERROR"
    r = client.post("/tasks/properties", json={"name": "X", "type": "WHATEVER"})
    assert r.status_code == 422
    assert "type" in _error(r)["errors"]


def test_frozen_database_blocks_property_and_record_writes(client):
    meta = _data(client.patch("/books/freeze", json={"frozen": True, "reason": "Archived"}))
    assert meta["frozen"] is True
    r = client.post("/books/properties", json={"name": "Pages", "type": "NUMBER"})
    assert r.status_code == 403
    assert _error(r)["message"] == "Archived"
    assert client.post("/books/records", json={"properties": {"title": "X"}}).status_code == 403
    _data(client.patch("/books/freeze", json={"frozen": False}))
    assert client.post("/books/records", json={"properties": {"title": "X"}}).status_code == 201


# ---- Views ----


def test_view_lifecycle(client):
    body = {
        "name": "High priority",
        "type": "LIST",
        "filters": [{"propertyId": "priority", "operator": "greater_than", "value": 2}],
        "sorts": [{"propertyId": "due", "direction": "asc"}],
        "visibleProperties": ["title", "priority"],
    }
    r = client.post("/tasks/views", json=body)
    assert r.status_code == 201, r.text
    view = _data(r)
    assert view["id"] == "high_priority"

    patched = _data(client.patch(f"/tasks/views/{view['id']}", json={"name": "Urgent"}))
    assert patched["name"] == "Urgent"
    assert patched["filters"][0]["propertyId"] == "priority"

    replaced = _data(client.put(f"/tasks/views/{view['id']}", json={"name": "Urgent", "type": "TABLE"}))
    assert replaced["filters"] == []
    assert replaced["type"] == "TABLE"

    dup = _data(client.post(f"/tasks/views/{view['id']}/duplicate"))
    assert dup["name"] == "Urgent (copy)"
    assert dup["isDefault"] is False

    assert client.delete(f"/tasks/views/{view['id']}").status_code == 200
    assert client.get(f"/tasks/views/{view['id']}").status_code == 404


def test_setting_default_view_clears_previous_default(client):
    _data(client.patch("/tasks/views/board", json={"isDefault": True}))
    views = {v["id"]: v for v in _data(client.get("/tasks/views"))}
    assert views["board"]["isDefault"] is True
    assert views["all"]["isDefault"] is False
    assert _data(client.get("/tasks/views/default"))["id"] == "board"


def test_default_view_falls_back_to_first_view(client):
    # With no default flagged the first view is used
    _data(client.patch("/tasks/views/all", json={"isDefault": False}))
    assert _data(client.get("/tasks/views/default"))["id"] == "all"


def test_view_must_reference_existing_properties(client):
    r = client.post("/tasks/views", json={"name": "Bad", "sorts": [{"propertyId": "ghost"}]})
    assert r.status_code == 404
    r = client.post(
        "/tasks/views",
        json={"name": "Bad op", "filters": [{"propertyId": "done", "operator": "contains", "value": "x"}]},
    )
    assert r.status_code == 422


def test_unsupported_view_type_is_rejected(client):
    r = client.post("/calendar/views", json={"name": "Board", "type": "BOARD"})
    assert r.status_code == 422
    assert "type" in _error(r)["errors"]
