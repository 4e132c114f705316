# File: /docview/engine/projection.py | Version: 1.0 | Title: Lazy view projections over a schema snapshot
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from docview.core.errors import NotFoundError, ValidationError
from docview.engine.events import InvalidationBus
from docview.engine.filtering import filter_records, search_records
from docview.engine.property_types import PropertyTypeRegistry, registry as default_registry
from docview.engine.sorting import sort_records
from docview.engine.types import Property, PropertyType, Record, Schema, ViewDefinition
from docview.engine.visibility import visible_properties

log = logging.getLogger(__name__)

NO_VALUE = "No Value"


def default_view(views: Iterable[ViewDefinition]) -> Optional[ViewDefinition]:
    """First view flagged default, else the first view, else None."""
    views = list(views)
    for v in views:
        if v.is_default:
            return v
    return views[0] if views else None


@dataclass
class Group:
    key: Any
    label: str
    records: List[Record] = field(default_factory=list)


def group_records(
    records: Iterable[Record],
    prop: Property,
    reg: Optional[PropertyTypeRegistry] = None,
) -> List[Group]:
    """Buckets in first-seen order; MULTI_SELECT records land in every option bucket."""
    reg = reg or default_registry
    groups: Dict[Any, Group] = {}

    def bucket(key: Any, label: str) -> Group:
        if key not in groups:
            groups[key] = Group(key=key, label=label)
        return groups[key]

    for r in records:
        raw = reg.resolve_value(prop, r)
        if reg.is_blank(prop.type, raw):
            bucket(None, NO_VALUE).records.append(r)
            continue
        if prop.type == PropertyType.MULTI_SELECT:
            for oid in reg.coerce(prop.type, raw).value:
                bucket(oid, reg.display_value(PropertyType.SELECT, oid, prop)).records.append(r)
            continue
        if prop.type == PropertyType.SELECT:
            key = reg.coerce(prop.type, raw).value
        else:
            key = reg.display_value(prop.type, raw, prop)
        bucket(key, reg.display_value(prop.type, raw, prop)).records.append(r)
    return list(groups.values())


class ViewProjection:
    """
    Columns, rows and groups of one view, computed on first access and kept
    until the schema's bus says otherwise.
    """

    def __init__(
        self,
        schema_provider: Callable[[], Schema],
        view_id: Optional[str],
        records_provider: Callable[[], List[Record]],
        *,
        registry: Optional[PropertyTypeRegistry] = None,
        bus: Optional[InvalidationBus] = None,
    ) -> None:
        self._schema_provider = schema_provider
        self._records_provider = records_provider
        self._view_id = view_id
        self._registry = registry or default_registry
        self._cache: Dict[str, Any] = {}
        self.version = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        if bus is not None:
            self._unsubscribe = bus.subscribe(schema_provider().id, self._on_invalidate)

    def _on_invalidate(self, schema_id: str, reason: str) -> None:
        self.invalidate()

    def invalidate(self) -> None:
        self._cache.clear()
        self.version += 1

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _cached(self, key: str, build: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = build()
        return self._cache[key]

    @property
    def schema(self) -> Schema:
        return self._cached("schema", self._schema_provider)

    @property
    def view(self) -> ViewDefinition:
        def build() -> ViewDefinition:
            schema = self.schema
            if self._view_id is not None:
                v = schema.get_view(self._view_id)
                if v is None:
                    raise NotFoundError("view", self._view_id)
                return v
            v = default_view(schema.views)
            if v is None:
                raise NotFoundError("view")
            return v

        return self._cached("view", build)

    @property
    def columns(self) -> List[Property]:
        return self._cached("columns", lambda: visible_properties(self.schema, self.view))

    @property
    def rows(self) -> List[Record]:
        def build() -> List[Record]:
            schema, view = self.schema, self.view
            kept = filter_records(self._records_provider(), view.filters, schema, self._registry)
            return sort_records(kept, view.sorts, schema, self._registry)

        return self._cached("rows", build)

    @property
    def groups(self) -> List[Group]:
        def build() -> List[Group]:
            group_by = self.view.group_by
            prop = self.schema.get_property(group_by) if group_by else None
            if prop is None:
                return []
            return group_records(self.rows, prop, self._registry)

        return self._cached("groups", build)

    def search(self, query: Optional[str]) -> List[Record]:
        return search_records(self.rows, query, self.columns, self._registry)

    def display_row(self, record: Record) -> Dict[str, str]:
        reg = self._registry
        return {
            p.id: reg.display_value(p.type, reg.resolve_value(p, record), p)
            for p in self.columns
        }


def check_view_references(
    schema: Schema,
    view: ViewDefinition,
    reg: Optional[PropertyTypeRegistry] = None,
) -> None:
    """
    New or edited views may only point at existing properties, and filter
    operators must suit the property type. Stored views are not re-checked.
    """
    reg = reg or default_registry
    props = schema.property_map()
    for pid in view.visible_properties:
        if pid not in props:
            raise NotFoundError("property", pid)
    for rule in view.filters:
        prop = props.get(rule.property_id)
        if prop is None:
            raise NotFoundError("property", rule.property_id)
        if not reg.supports_operator(prop.type, rule.operator):
            raise ValidationError(
                f"Operator '{rule.operator.value}' is not valid for {prop.type.value} property '{prop.name}'",
                errors={"filters": [f"Invalid operator for {prop.id}"]},
            )
    for rule in view.sorts:
        if rule.property_id not in props:
            raise NotFoundError("property", rule.property_id)
    if view.group_by and view.group_by not in props:
        raise NotFoundError("property", view.group_by)
