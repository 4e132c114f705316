# File: /docview/services/module_api.py | Version: 1.0 | Title: Generic per-module REST facade (httpx)
"""
One facade for every module. Each call is one HTTP request against
``/{module}/...``; responses are unwrapped from the envelope and parsed into
engine models. No retries.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, TypeVar, Union

import httpx
from pydantic import Field, ValidationError as PydanticValidationError

from docview.core.config import settings
from docview.core.errors import (
    DocumentViewError,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    TypeConversionError,
    UnsupportedOperation,
    ValidationError,
)
from docview.core.modules import Capabilities, ModuleConfig
from docview.core.query_params import encode_list_params
from docview.engine.types import (
    EngineModel,
    InsertPosition,
    Property,
    PropertyType,
    Record,
    Schema,
    SortRule,
    ViewDefinition,
)
from docview.schemas.envelope import ApiEnvelope, ErrorBody

log = logging.getLogger(__name__)

Body = Union[EngineModel, Mapping[str, Any]]
M = TypeVar("M", bound=EngineModel)


class RecordList(EngineModel):
    records: List[Record] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 0
    has_next: bool = False
    has_prev: bool = False


def _body(obj: Body) -> Dict[str, Any]:
    return obj.to_wire() if isinstance(obj, EngineModel) else dict(obj)


def error_from_envelope(status: int, error: Optional[ErrorBody], fallback: str) -> DocumentViewError:
    message = error.message if error else fallback
    code = error.code if error else None
    errors = error.errors if error else None
    if code == TypeConversionError.code:
        return TypeConversionError(message=message)
    if status == 404:
        return NotFoundError("resource", message=message)
    if status == 403:
        return PermissionDeniedError(message, reason=message)
    if code == UnsupportedOperation.code:
        return UnsupportedOperation(message)
    if status in (400, 422):
        return ValidationError(message, errors=errors)
    return TransportError(message, http_status=status)


class ModuleApiFacade:
    def __init__(
        self,
        module: str,
        client: Optional[httpx.Client] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.module = module
        self._owns_client = client is None
        self.client = client or httpx.Client(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout or settings.API_TIMEOUT_SECONDS,
        )
        self._capabilities: Optional[Capabilities] = None

    # ---- Plumbing ----

    def _path(self, *parts: str) -> str:
        return "/" + "/".join([self.module, *parts])

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Any = None,
    ) -> Any:
        try:
            res = self.client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        try:
            envelope = ApiEnvelope[Any].model_validate(res.json())
        except (ValueError, PydanticValidationError) as e:
            raise TransportError(
                f"{method} {path} returned an unreadable response ({res.status_code})",
                http_status=res.status_code,
            ) from e

        if res.is_success and envelope.success:
            log.debug("%s %s -> %s", method, path, res.status_code)
            return envelope.data
        raise error_from_envelope(res.status_code, envelope.error, envelope.message or f"HTTP {res.status_code}")

    def _parse(self, model: type[M], data: Any) -> M:
        """A success envelope whose data does not fit the model is a store failure."""
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            log.warning("Unexpected %s data from %s: %s", model.__name__, self.module, e.error_count())
            raise TransportError(f"{self.module} returned malformed {model.__name__} data") from e

    def _parse_list(self, model: type[M], data: Any) -> List[M]:
        if not isinstance(data, list):
            raise TransportError(f"{self.module} returned malformed {model.__name__} list data")
        return [self._parse(model, item) for item in data]

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "ModuleApiFacade":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- Config ----

    def get_config(self) -> ModuleConfig:
        config = self._parse(ModuleConfig, self._request("GET", self._path("config")))
        self._capabilities = config.capabilities
        return config

    @property
    def capabilities(self) -> Capabilities:
        if self._capabilities is None:
            self.get_config()
        return self._capabilities

    def freeze_database(self, frozen: bool = True, reason: Optional[str] = None) -> Schema:
        data = self._request("PATCH", self._path("freeze"), json={"frozen": frozen, "reason": reason})
        return self._parse(Schema, data)

    # ---- Views ----

    def list_views(self) -> List[ViewDefinition]:
        return self._parse_list(ViewDefinition, self._request("GET", self._path("views")))

    def get_view(self, view_id: str) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("GET", self._path("views", view_id)))

    def get_default_view(self) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("GET", self._path("views", "default")))

    def create_view(self, view: Body) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("POST", self._path("views"), json=_body(view)))

    def replace_view(self, view_id: str, view: Body) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("PUT", self._path("views", view_id), json=_body(view)))

    def update_view(self, view_id: str, changes: Mapping[str, Any]) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("PATCH", self._path("views", view_id), json=dict(changes)))

    def delete_view(self, view_id: str) -> ViewDefinition:
        return self._parse(ViewDefinition, self._request("DELETE", self._path("views", view_id)))

    def duplicate_view(self, view_id: str, name: Optional[str] = None) -> ViewDefinition:
        if not self.capabilities.supports_view_duplication:
            raise UnsupportedOperation(f"{self.module} does not support view duplication")
        body = {"name": name} if name else None
        return self._parse(ViewDefinition, self._request("POST", self._path("views", view_id, "duplicate"), json=body))

    # ---- Properties ----

    def list_properties(self) -> List[Property]:
        return self._parse_list(Property, self._request("GET", self._path("properties")))

    def get_property(self, property_id: str) -> Property:
        return self._parse(Property, self._request("GET", self._path("properties", property_id)))

    def create_property(self, prop: Body) -> Property:
        return self._parse(Property, self._request("POST", self._path("properties"), json=_body(prop)))

    def replace_property(self, property_id: str, prop: Body) -> Property:
        return self._parse(Property, self._request("PUT", self._path("properties", property_id), json=_body(prop)))

    def update_property(self, property_id: str, changes: Mapping[str, Any]) -> Property:
        data = self._request("PATCH", self._path("properties", property_id), json=dict(changes))
        return self._parse(Property, data)

    def delete_property(self, property_id: str) -> Property:
        return self._parse(Property, self._request("DELETE", self._path("properties", property_id)))

    def freeze_property(
        self,
        property_id: str,
        frozen: bool = True,
        *,
        allow_edit: Optional[bool] = None,
        allow_hide: Optional[bool] = None,
        allow_delete: Optional[bool] = None,
        reason: Optional[str] = None,
    ) -> Property:
        body = {
            "frozen": frozen,
            "allowEdit": allow_edit,
            "allowHide": allow_hide,
            "allowDelete": allow_delete,
            "reason": reason,
        }
        return self._parse(Property, self._request("PATCH", self._path("properties", property_id, "freeze"), json=body))

    def hide_property(self, property_id: str, hidden: bool = True) -> Property:
        data = self._request("PATCH", self._path("properties", property_id, "hide"), json={"hidden": hidden})
        return self._parse(Property, data)

    def change_property_type(self, property_id: str, new_type: Union[PropertyType, str]) -> Property:
        body = {"type": PropertyType(new_type).value}
        return self._parse(Property, self._request("PATCH", self._path("properties", property_id, "type"), json=body))

    def rename_property(self, property_id: str, name: str) -> Property:
        return self._parse(Property, self._request("PATCH", self._path("properties", property_id, "name"), json={"name": name}))

    def duplicate_property(self, property_id: str, name: Optional[str] = None) -> Property:
        body = {"name": name} if name else None
        return self._parse(Property, self._request("POST", self._path("properties", property_id, "duplicate"), json=body))

    def insert_property(self, property_id: str, position: Union[InsertPosition, str], prop: Body) -> Property:
        body = {"position": InsertPosition(position).value, "property": _body(prop)}
        return self._parse(Property, self._request("POST", self._path("properties", property_id, "insert"), json=body))

    # ---- Records ----

    def list_records(
        self,
        *,
        view_id: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        filters: Optional[Mapping[str, Any]] = None,
        sorts: Optional[Sequence[SortRule]] = None,
    ) -> RecordList:
        caps = self.capabilities
        # Parameters the module cannot honour are not sent at all
        params = encode_list_params(
            view_id=view_id,
            page=page if caps.supports_pagination else None,
            limit=limit if caps.supports_pagination else None,
            search=search if caps.supports_search else None,
            filters=filters if caps.supports_filters else None,
            sorts=sorts if caps.supports_sorts else None,
        )
        return self._parse(RecordList, self._request("GET", self._path("records"), params=params))

    def get_record(self, record_id: str) -> Record:
        return self._parse(Record, self._request("GET", self._path("records", record_id)))

    def create_record(self, properties: Mapping[str, Any], record_id: Optional[str] = None) -> Record:
        body: Dict[str, Any] = {"properties": dict(properties)}
        if record_id:
            body["id"] = record_id
        return self._parse(Record, self._request("POST", self._path("records"), json=body))

    def replace_record(self, record_id: str, properties: Mapping[str, Any]) -> Record:
        data = self._request("PUT", self._path("records", record_id), json={"properties": dict(properties)})
        return self._parse(Record, data)

    def update_record(self, record_id: str, properties: Mapping[str, Any]) -> Record:
        data = self._request("PATCH", self._path("records", record_id), json={"properties": dict(properties)})
        return self._parse(Record, data)

    def delete_record(self, record_id: str) -> Record:
        return self._parse(Record, self._request("DELETE", self._path("records", record_id)))

    def bulk_update_records(self, ids: Sequence[str], properties: Mapping[str, Any]) -> List[Record]:
        if not self.capabilities.supports_bulk:
            raise UnsupportedOperation(f"{self.module} does not support bulk operations")
        body = {"ids": list(ids), "properties": dict(properties)}
        return self._parse_list(Record, self._request("PATCH", self._path("records", "bulk"), json=body))

    def bulk_delete_records(self, ids: Sequence[str]) -> int:
        if not self.capabilities.supports_bulk:
            raise UnsupportedOperation(f"{self.module} does not support bulk operations")
        data = self._request("DELETE", self._path("records", "bulk"), json={"ids": list(ids)})
        deleted = data.get("deleted") if isinstance(data, dict) else None
        if not isinstance(deleted, int):
            raise TransportError(f"{self.module} returned malformed bulk delete data")
        return deleted
