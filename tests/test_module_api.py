# File: /tests/test_module_api.py | Version: 1.0 | Title: REST facade: envelope unwrapping, error mapping, capabilities
from __future__ import annotations

import httpx
import pytest

from docview.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    TypeConversionError,
    UnsupportedOperation,
    ValidationError,
)
from docview.engine.types import PropertyType, SortRule, SortDirection
from docview.schemas.envelope import ErrorBody, failed, ok
from docview.services.module_api import ModuleApiFacade, RecordList, error_from_envelope


def _fake(handler, module="calendar"):
    client = httpx.Client(base_url="http://store", transport=httpx.MockTransport(handler))
    return ModuleApiFacade(module, client)


CALENDAR_CONFIG = {
    "module": "calendar",
    "displayName": "Calendar",
    "capabilities": {"supportsSearch": False, "supportsBulk": False, "supportsViewDuplication": False},
}


# ---- Against the reference API ----


def test_config_and_capabilities(tasks_api):
    config = tasks_api.get_config()
    assert config.module == "tasks"
    assert config.database.name == "Tasks"
    assert tasks_api.capabilities.supports_bulk is True


def test_property_round_trip(tasks_api):
    created = tasks_api.create_property({"name": "Estimate", "type": "SELECT", "selectOptions": [{"id": "s", "name": "S"}]})
    assert created.id == "estimate"
    assert tasks_api.rename_property("estimate", "Points").name == "Points"
    assert tasks_api.change_property_type("estimate", PropertyType.MULTI_SELECT).type == PropertyType.MULTI_SELECT
    inserted = tasks_api.insert_property("estimate", "left", {"id": "size", "name": "Size", "type": "TEXT"})
    ids = [p.id for p in tasks_api.list_properties()]
    assert ids.index(inserted.id) + 1 == ids.index("estimate")
    dup = tasks_api.duplicate_property("estimate")
    assert dup.name == "Points (copy)"
    assert tasks_api.delete_property("estimate").id == "estimate"


def test_errors_map_to_domain_exceptions(tasks_api):
    with pytest.raises(NotFoundError):
        tasks_api.get_property("ghost")
    with pytest.raises(PermissionDeniedError):
        tasks_api.hide_property("title")
    with pytest.raises(TypeConversionError):
        tasks_api.change_property_type("status", "NUMBER")
    with pytest.raises(ValidationError) as ei:
        tasks_api.create_record({"priority": 1})
    assert "title" in ei.value.errors


def test_records_and_views(tasks_api):
    a = tasks_api.create_record({"title": "B task", "priority": 1})
    b = tasks_api.create_record({"title": "A task", "priority": 2}, record_id="fixed-id")
    assert b.id == "fixed-id"
    assert a.created_at is not None

    page = tasks_api.list_records(sorts=[SortRule(property_id="title", direction=SortDirection.asc)])
    assert isinstance(page, RecordList)
    assert [r.id for r in page.records] == ["fixed-id", a.id]

    assert tasks_api.update_record(a.id, {"done": True}).properties["done"] is True
    assert tasks_api.bulk_update_records([a.id, b.id], {"priority": 4})[0].properties["priority"] == 4
    assert tasks_api.bulk_delete_records([a.id, b.id]) == 2

    view = tasks_api.create_view({"name": "Mine", "type": "LIST"})
    assert tasks_api.get_view(view.id).name == "Mine"
    assert tasks_api.update_view(view.id, {"isDefault": True}).is_default is True
    assert tasks_api.get_default_view().id == view.id
    assert tasks_api.duplicate_view(view.id, "Mine 2").name == "Mine 2"
    assert tasks_api.delete_view(view.id).id == view.id


def test_freeze_database_returns_schema(tasks_api):
    schema = tasks_api.freeze_database(True, "Locked")
    assert schema.frozen is True
    assert schema.frozen_reason == "Locked"
    with pytest.raises(PermissionDeniedError) as ei:
        tasks_api.create_record({"title": "X"})
    assert ei.value.message == "Locked"


# ---- Against a fake store ----


def test_connection_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        _fake(handler).list_views()


def test_unreadable_body_is_transport_error():
    api = _fake(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
    with pytest.raises(TransportError) as ei:
        api.list_views()
    assert ei.value.http_status == 502


def test_server_error_envelope_is_transport_error():
    api = _fake(lambda request: httpx.Response(500, json=failed("Internal server error", "INTERNAL_SERVER_ERROR")))
    with pytest.raises(TransportError) as ei:
        api.get_view("month")
    assert ei.value.http_status == 500


def test_unsupported_params_are_not_sent():
    seen = []

    def handler(request):
        if request.url.path == "/calendar/config":
            return httpx.Response(200, json=ok(CALENDAR_CONFIG))
        seen.append(request)
        return httpx.Response(200, json=ok({"records": [], "total": 0, "page": 1, "limit": 50}))

    api = _fake(handler)
    api.list_records(search="standup", filters={"category": "work"}, page=1)
    params = seen[0].url.params
    assert "search" not in params
    assert params["filters[category]"] == "work"
    assert params["page"] == "1"


def test_unsupported_operations_fail_without_a_request():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json=ok(CALENDAR_CONFIG))

    api = _fake(handler)
    with pytest.raises(UnsupportedOperation):
        api.duplicate_view("month")
    with pytest.raises(UnsupportedOperation):
        api.bulk_delete_records(["e1"])
    assert calls == ["/calendar/config"]


def test_error_from_envelope_mapping():
    assert isinstance(error_from_envelope(404, None, "gone"), NotFoundError)
    err = error_from_envelope(403, ErrorBody(message="Frozen", code="PERMISSION_DENIED"), "x")
    assert isinstance(err, PermissionDeniedError) and err.reason == "Frozen"
    err = error_from_envelope(422, ErrorBody(message="Bad", code="TYPE_CONVERSION_ERROR"), "x")
    assert isinstance(err, TypeConversionError)
    assert isinstance(error_from_envelope(400, ErrorBody(message="No", code="UNSUPPORTED_OPERATION"), "x"), UnsupportedOperation)
    err = error_from_envelope(422, ErrorBody(message="Bad", errors={"name": ["Required"]}), "x")
    assert type(err) is ValidationError and err.errors == {"name": ["Required"]}
    assert isinstance(error_from_envelope(503, None, "down"), TransportError)


def test_malformed_success_data_is_transport_error():
    def handler(request):
        if request.url.path == "/tasks/config":
            return httpx.Response(200, json=ok({"module": "tasks", "displayName": "Tasks"}))
        if request.url.path == "/tasks/views":
            return httpx.Response(200, json=ok({"not": "a list"}))
        return httpx.Response(200, json=ok(None))

    api = _fake(handler, module="tasks")
    with pytest.raises(TransportError) as ei:
        api.update_record("t1", {"priority": 9})
    assert ei.value.message == "tasks returned malformed Record data"
    with pytest.raises(TransportError):
        api.list_views()
    with pytest.raises(TransportError):
        api.bulk_delete_records(["t1"])
