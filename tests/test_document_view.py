# File: /tests/test_document_view.py | Version: 1.0 | Title: Controller: load, optimistic mutations, rollback, invalidation
from __future__ import annotations

import httpx
import pytest

from docview.core.errors import (
    PermissionDeniedError,
    TransportError,
    TypeConversionError,
    UnsupportedOperation,
    ValidationError,
)
from docview.engine.edit_session import CommitStatus, EditState
from docview.engine.types import FilterOperator, PropertyType
from docview.schemas.envelope import ok
from docview.services.document_view import DocumentViewController
from docview.services.module_api import ModuleApiFacade


class SpyApi:
    """Wraps a facade, records method calls and can fail or intercept them."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []
        self.fail = {}
        self.before = {}

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        def wrapped(*args, **kwargs):
            self.calls.append(name)
            if name in self.fail:
                raise self.fail[name]
            if name in self.before:
                self.before[name]()
            return attr(*args, **kwargs)

        return wrapped


@pytest.fixture
def spy(tasks_api):
    return SpyApi(tasks_api)


@pytest.fixture
def notes():
    return []


@pytest.fixture
def ctrl(spy, notes, tasks_api):
    tasks_api.create_record({"title": "Write docs", "status": "done", "priority": 2, "done": True}, record_id="t1")
    tasks_api.create_record({"title": "Fix login", "status": "todo", "priority": 3, "labels": ["bug"]}, record_id="t2")
    c = DocumentViewController(spy, notifier=notes.append)
    c.load()
    spy.calls.clear()
    return c


@pytest.fixture
def events(ctrl):
    seen = []
    ctrl.bus.subscribe(ctrl.schema.id, lambda sid, reason: seen.append(reason))
    return seen


def _value(ctrl, rid, pid):
    return next(r for r in ctrl.records if r.id == rid).properties.get(pid)


# ---- Loading ----


def test_load_builds_schema_with_frozen_flags_and_records(ctrl):
    assert ctrl.schema.name == "Tasks"
    assert ctrl.schema.get_property("title").frozen is True
    assert ctrl.schema.get_property("status").allow_delete is False
    assert {r.id for r in ctrl.records} == {"t1", "t2"}
    assert ctrl.default_view().id == "all"
    assert len(ctrl.projection().rows) == 2


def test_schema_before_load_is_an_error(tasks_api):
    with pytest.raises(UnsupportedOperation):
        DocumentViewController(tasks_api).schema


def test_load_pages_through_every_record(tasks_api, monkeypatch):
    for i in range(5):
        tasks_api.create_record({"title": f"Task {i}"})
    monkeypatch.setattr("docview.services.document_view.settings.MAX_PAGE_SIZE", 2)
    c = DocumentViewController(tasks_api)
    c.load()
    assert len(c.records) == 5


# ---- Properties ----


def test_disallowed_type_change_sends_nothing(ctrl, spy):
    before = ctrl.schema
    with pytest.raises(TypeConversionError):
        ctrl.update_property_type("status", "NUMBER")
    assert spy.calls == []
    assert ctrl.schema is before
    assert ctrl.schema.get_property("status").type == PropertyType.SELECT


def test_allowed_type_change_converts_local_values(ctrl):
    updated = ctrl.update_property_type("status", PropertyType.MULTI_SELECT)
    assert updated.type == PropertyType.MULTI_SELECT
    assert _value(ctrl, "t2", "status") == ["todo"]


def test_add_insert_rename_and_delete_property(ctrl, events):
    added = ctrl.add_property({"id": "points", "name": "Points", "type": "NUMBER"})
    assert added.id == "points"
    inserted = ctrl.insert_property("points", "left", {"id": "size", "name": "Size", "type": "TEXT"})
    assert inserted.id == "size"
    ids = [p.id for p in ctrl.schema.properties]
    assert ids[-2:] == ["size", "points"]
    assert [p.order for p in ctrl.schema.properties] == list(range(len(ids)))
    assert ctrl.rename_property("points", "Story points").name == "Story points"
    ctrl.delete_property("size")
    assert ctrl.schema.get_property("size") is None
    assert events == ["property:add", "property:insert", "property:rename", "property:delete"]


def test_duplicate_property_lands_after_source_with_values(ctrl):
    dup = ctrl.duplicate_property("priority")
    ids = [p.id for p in ctrl.schema.properties]
    assert ids[ids.index("priority") + 1] == dup.id
    assert _value(ctrl, "t2", dup.id) == 3


def test_frozen_rules_are_checked_before_dispatch(ctrl, spy):
    with pytest.raises(PermissionDeniedError):
        ctrl.hide_property("title")
    with pytest.raises(PermissionDeniedError) as ei:
        ctrl.delete_property("status")
    assert ei.value.message == "Status drives the board view"
    with pytest.raises(PermissionDeniedError):
        ctrl.toggle_view_property("all", "title", False)
    assert spy.calls == []


def test_freeze_unfreeze_and_hide(ctrl):
    frozen = ctrl.freeze_property("priority", allow_edit=False, reason="Set by PM")
    assert frozen.frozen is True and frozen.allow_edit is False
    with pytest.raises(PermissionDeniedError):
        ctrl.update_record_property("t1", "priority", 9)
    assert ctrl.unfreeze_property("priority").allow_edit is None
    assert ctrl.hide_property("due").visible is False
    assert "due" not in [p.id for p in ctrl.projection().columns]
    assert ctrl.unhide_property("due").visible is True


# ---- Views ----


def test_view_operations(ctrl, events):
    created = ctrl.create_view({"id": "mine", "name": "Mine", "type": "LIST"})
    assert created.id == "mine"
    ctrl.set_view_filters("mine", [{"propertyId": "status", "operator": "equals", "value": "todo"}])
    assert [r.id for r in ctrl.projection("mine").rows] == ["t2"]
    ctrl.set_view_sorts("mine", [{"propertyId": "priority", "direction": "desc"}])
    ctrl.toggle_view_property("mine", "due", False)
    assert "due" not in ctrl.schema.get_view("mine").visible_properties

    ctrl.set_default_view("mine")
    defaults = [v.id for v in ctrl.schema.views if v.is_default]
    assert defaults == ["mine"]

    copy = ctrl.duplicate_view("mine", "Mine again")
    assert copy.filters[0].operator == FilterOperator.equals
    ctrl.delete_view("mine")
    assert ctrl.schema.get_view("mine") is None
    assert events[0] == "view:create"
    assert events[-1] == "view:delete"


def test_invalid_filter_operator_is_rejected_locally(ctrl, spy):
    with pytest.raises(ValidationError):
        ctrl.set_view_filters("all", [{"propertyId": "done", "operator": "contains", "value": "x"}])
    assert spy.calls == []


# ---- Records ----


def test_create_and_update_record(ctrl):
    rec = ctrl.create_record({"title": "New"})
    assert rec.id in {r.id for r in ctrl.records}
    updated = ctrl.update_record_property(rec.id, "priority", "4")
    assert updated.properties["priority"] == 4
    with pytest.raises(ValidationError):
        ctrl.create_record({"priority": 1})


def test_transport_failure_rolls_back_and_notifies_once(ctrl, spy, notes, events):
    spy.fail["update_record"] = TransportError("store offline")
    assert ctrl.update_record_property("t1", "priority", 8) is None
    assert _value(ctrl, "t1", "priority") == 2
    assert notes == ["Could not update record: store offline"]
    assert events == ["record:update"]


def test_transport_failure_on_rename_restores_schema(ctrl, spy, notes):
    spy.fail["rename_property"] = TransportError("timeout")
    assert ctrl.rename_property("priority", "Urgency") is None
    assert ctrl.schema.get_property("priority").name == "Priority"
    assert len(notes) == 1


def test_rejected_mutation_rolls_back_and_raises(ctrl, spy, notes):
    spy.fail["delete_record"] = ValidationError("rejected")
    with pytest.raises(ValidationError):
        ctrl.delete_record("t1")
    assert "t1" in {r.id for r in ctrl.records}
    assert notes == []


def test_response_for_deleted_record_is_discarded(ctrl, spy):
    def drop_locally():
        ctrl.records = [r for r in ctrl.records if r.id != "t2"]

    spy.before["update_record"] = drop_locally
    assert ctrl.update_record_property("t2", "priority", 1) is None
    assert "t2" not in {r.id for r in ctrl.records}


def test_each_mutation_invalidates_projections_once(ctrl):
    proj = ctrl.projection()
    assert len(proj.rows) == 2
    version = proj.version
    ctrl.create_record({"title": "Third"})
    assert proj.version == version + 1
    assert len(proj.rows) == 3


def test_checkbox_cell_commits_one_mutation(ctrl, spy, events):
    session = ctrl.edit_cell("t2", "done")
    result = session.activate()
    assert result.status == CommitStatus.COMMITTED
    assert spy.calls == ["update_record"]
    assert events == ["record:update"]
    assert _value(ctrl, "t2", "done") is True


def test_cell_transport_failure_notifies(ctrl, spy, notes):
    spy.fail["update_record"] = TransportError("offline")
    result = ctrl.edit_cell("t2", "status").select("done")
    assert result.status == CommitStatus.FAILED
    assert _value(ctrl, "t2", "status") == "todo"
    assert len(notes) == 1


def test_bulk_operations(ctrl):
    updated = ctrl.bulk_update_records(["t1", "t2"], {"priority": 5})
    assert [r.properties["priority"] for r in updated] == [5, 5]
    assert ctrl.bulk_delete_records(["t1"]) == 1
    assert [r.id for r in ctrl.records] == ["t2"]
    with pytest.raises(ValidationError):
        ctrl.bulk_delete_records([])


def test_calendar_rejects_bulk_and_view_duplication(client):
    api = ModuleApiFacade("calendar", client)
    api.create_record({"title": "Standup", "start": "2026-10-19"}, record_id="e1")
    c = DocumentViewController(api)
    c.load()
    with pytest.raises(UnsupportedOperation):
        c.bulk_delete_records(["e1"])
    with pytest.raises(UnsupportedOperation):
        c.duplicate_view("month")


def test_frozen_database_blocks_writes_locally(tasks_api, spy):
    tasks_api.freeze_database(True, "Read only")
    c = DocumentViewController(spy)
    c.load()
    spy.calls.clear()
    with pytest.raises(PermissionDeniedError):
        c.create_record({"title": "X"})
    with pytest.raises(PermissionDeniedError):
        c.add_property({"id": "x", "name": "X", "type": "TEXT"})
    assert spy.calls == []
    # View changes stay allowed
    assert c.set_default_view("board").is_default is True
    hidden = c.toggle_view_property("all", "due", False)
    assert "due" not in hidden.visible_properties


def test_malformed_store_response_rolls_back_and_notifies(ctrl, tasks_api, notes, monkeypatch):
    real = tasks_api.client.request

    def request(method, url, **kwargs):
        if method == "PATCH":
            return httpx.Response(200, json=ok(None))
        return real(method, url, **kwargs)

    monkeypatch.setattr(tasks_api.client, "request", request)
    assert ctrl.update_record_property("t1", "priority", 9) is None
    assert _value(ctrl, "t1", "priority") == 2
    assert notes == ["Could not update record: tasks returned malformed Record data"]

    session = ctrl.edit_cell("t1", "priority")
    session.begin()
    session.set_draft("9")
    assert session.handle_key("Enter").status == CommitStatus.FAILED
    assert session.state == EditState.VIEWING
    assert _value(ctrl, "t1", "priority") == 2
    assert len(notes) == 2
