# File: /docview/services/document_view.py | Version: 1.0 | Title: Document view controller (optimistic mutations over the module facade)
"""
Client-side owner of one module's schema, views and records.

Every mutation runs the same way: validate locally (guard, registry, view
references), apply the change to the local snapshot, make one facade call,
then keep the server's answer or roll the snapshot back. Each mutation
publishes one invalidation for the schema so every projection recomputes.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from docview.core.config import settings
from docview.core.errors import (
    DocumentViewError,
    NotFoundError,
    TransportError,
    UnsupportedOperation,
    ValidationError,
)
from docview.core.modules import ModuleConfig
from docview.engine.edit_session import RecordEditSession
from docview.engine.events import InvalidationBus
from docview.engine.frozen import FrozenPropertyGuard, apply_frozen_config, guard as default_guard
from docview.engine.projection import ViewProjection, check_view_references, default_view
from docview.engine.property_types import PropertyTypeRegistry, registry as default_registry
from docview.engine.types import (
    FilterRule,
    GuardedOperation,
    InsertPosition,
    Property,
    PropertyType,
    Record,
    Schema,
    SortRule,
    ViewDefinition,
)
from docview.engine.visibility import hide_globally, toggle_view_property, unhide_globally
from docview.schemas.documents import ViewUpdate
from docview.services.module_api import ModuleApiFacade

log = logging.getLogger(__name__)

Notifier = Callable[[str], None]


def _parse(model, data: Union[Mapping[str, Any], Any], message: str):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, message) from e


def _resequence(props: List[Property]) -> List[Property]:
    return [p if p.order == i else p.model_copy(update={"order": i}) for i, p in enumerate(props)]


class DocumentViewController:
    def __init__(
        self,
        api: ModuleApiFacade,
        *,
        registry: Optional[PropertyTypeRegistry] = None,
        guard: Optional[FrozenPropertyGuard] = None,
        bus: Optional[InvalidationBus] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.api = api
        self.registry = registry or default_registry
        self.guard = guard or default_guard
        self.bus = bus or InvalidationBus()
        self.notifier = notifier
        self.config: Optional[ModuleConfig] = None
        self._schema: Optional[Schema] = None
        self.records: List[Record] = []
        self._projections: Dict[Optional[str], ViewProjection] = {}

    # ---- Loading ----

    @property
    def schema(self) -> Schema:
        if self._schema is None:
            raise UnsupportedOperation("Controller is not loaded; call load() first")
        return self._schema

    def load(self) -> Schema:
        config = self.api.get_config()
        properties = self.api.list_properties()
        views = self.api.list_views()
        records = self._fetch_records()

        meta = config.database
        schema = Schema(
            id=meta.id if meta else config.module,
            name=meta.name if meta else config.display_name,
            properties=properties,
            views=views,
            frozen=meta.frozen if meta else False,
            frozen_reason=meta.frozen_reason if meta else None,
            owner_id=meta.owner_id if meta else None,
            permissions=meta.permissions if meta else [],
            tags=meta.tags if meta else [],
        )
        self.config = config
        self._schema = apply_frozen_config(schema, config.frozen_config)
        self.records = records
        log.info(
            "Loaded %s: %d properties, %d views, %d records",
            config.module,
            len(properties),
            len(views),
            len(records),
        )
        self._invalidate("load")
        return self._schema

    def _fetch_records(self) -> List[Record]:
        out: List[Record] = []
        page = 1
        while True:
            batch = self.api.list_records(page=page, limit=settings.MAX_PAGE_SIZE)
            out.extend(batch.records)
            if not batch.has_next:
                return out
            page += 1

    # ---- Projections ----

    def projection(self, view_id: Optional[str] = None) -> ViewProjection:
        """Cached per view; ``None`` follows the default view."""
        proj = self._projections.get(view_id)
        if proj is None:
            proj = ViewProjection(
                lambda: self.schema,
                view_id,
                lambda: list(self.records),
                registry=self.registry,
                bus=self.bus,
            )
            self._projections[view_id] = proj
        return proj

    def default_view(self) -> Optional[ViewDefinition]:
        return default_view(self.schema.views)

    def close(self) -> None:
        for proj in self._projections.values():
            proj.close()
        self._projections.clear()

    # ---- Mutation plumbing ----

    def _invalidate(self, reason: str) -> None:
        if self._schema is not None:
            self.bus.publish(self._schema.id, reason)

    def _notify(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier(message)

    def _snapshot(self):
        return self._schema, [r.model_copy(deep=True) for r in self.records]

    def _restore(self, snapshot) -> None:
        self._schema, self.records = snapshot

    def _dispatch(self, label: str, snapshot, call: Callable[[], Any]) -> Any:
        """
        Run one facade call after the optimistic change has been applied.
        Transport failures roll back, notify once and return None; any
        other error rolls back and propagates.
        """
        try:
            result = call()
        except TransportError as e:
            self._restore(snapshot)
            log.warning("%s failed, rolled back: %s", label, e.message)
            self._notify(f"Could not {label}: {e.message}")
            return None
        except DocumentViewError:
            self._restore(snapshot)
            self._invalidate(f"rollback:{label}")
            raise
        except Exception:
            self._restore(snapshot)
            self._invalidate(f"rollback:{label}")
            log.exception("%s raised unexpectedly, rolled back", label)
            raise
        return result

    def _property(self, property_id: str) -> Property:
        prop = self.schema.get_property(property_id)
        if prop is None:
            raise NotFoundError("property", property_id)
        return prop

    def _view(self, view_id: str) -> ViewDefinition:
        view = self.schema.get_view(view_id)
        if view is None:
            raise NotFoundError("view", view_id)
        return view

    def _record(self, record_id: str) -> Record:
        for r in self.records:
            if r.id == record_id:
                return r
        raise NotFoundError("record", record_id)

    def _set_properties(self, props: List[Property]) -> None:
        self._schema = self.schema.model_copy(update={"properties": props})

    def _replace_property(self, prop: Property) -> None:
        self._set_properties([prop if p.id == prop.id else p for p in self.schema.properties])

    def _reconcile_property(self, prop: Optional[Property], local_id: Optional[str] = None) -> Optional[Property]:
        """Swap the server's version in; drop it if the property is gone locally."""
        if prop is None:
            return None
        target = local_id or prop.id
        if self.schema.get_property(target) is None:
            log.debug("Discarding stale response for deleted property %s", target)
            return None
        self._set_properties([prop if p.id == target else p for p in self.schema.properties])
        return prop

    def _set_views(self, views: List[ViewDefinition]) -> None:
        self._schema = self.schema.model_copy(update={"views": views})

    def _reconcile_view(self, view: Optional[ViewDefinition], local_id: Optional[str] = None) -> Optional[ViewDefinition]:
        if view is None:
            return None
        target = local_id or view.id
        if self.schema.get_view(target) is None:
            log.debug("Discarding stale response for deleted view %s", target)
            return None
        views = [view if v.id == target else v for v in self.schema.views]
        if view.is_default:
            views = [v if v.id == view.id else v.model_copy(update={"is_default": False}) for v in views]
        self._set_views(views)
        return view

    def _reconcile_record(self, record: Optional[Record]) -> Optional[Record]:
        if record is None:
            return None
        for i, r in enumerate(self.records):
            if r.id == record.id:
                self.records[i] = record
                return record
        log.debug("Discarding stale response for deleted record %s", record.id)
        return None

    # ---- Property operations ----

    def add_property(self, prop: Union[Property, Mapping[str, Any]]) -> Optional[Property]:
        prop = _parse(Property, prop, "Invalid property")
        self.guard.authorize_database(self.schema)
        if self.config is not None and prop.type not in self.config.supported_property_types:
            raise ValidationError(
                f"{prop.type.value} properties are not supported in {self.config.module}",
                errors={"type": [f"Unsupported property type {prop.type.value}"]},
            )
        if self.schema.get_property(prop.id) is not None:
            raise ValidationError(f"Property '{prop.id}' already exists", errors={"id": ["Duplicate property id"]})

        snapshot = self._snapshot()
        prop = prop.model_copy(update={"order": len(self.schema.properties)})
        self._set_properties([*self.schema.properties, prop])
        created = self._dispatch("add property", snapshot, lambda: self.api.create_property(prop))
        result = self._reconcile_property(created, prop.id)
        self._invalidate("property:add")
        return result

    def insert_property(
        self,
        anchor_id: str,
        position: Union[InsertPosition, str],
        prop: Union[Property, Mapping[str, Any]],
    ) -> Optional[Property]:
        self._property(anchor_id)
        position = InsertPosition(position)
        prop = _parse(Property, prop, "Invalid property")
        self.guard.authorize_database(self.schema)
        if self.schema.get_property(prop.id) is not None:
            raise ValidationError(f"Property '{prop.id}' already exists", errors={"id": ["Duplicate property id"]})

        snapshot = self._snapshot()
        props = list(self.schema.properties)
        index = [p.id for p in props].index(anchor_id)
        props.insert(index + 1 if position == InsertPosition.right else index, prop)
        self._set_properties(_resequence(props))
        created = self._dispatch(
            "insert property",
            snapshot,
            lambda: self.api.insert_property(anchor_id, position, prop),
        )
        result = self._reconcile_property(created, prop.id)
        self._invalidate("property:insert")
        return result

    def rename_property(self, property_id: str, name: str) -> Optional[Property]:
        prop = self._property(property_id)
        if not name or not name.strip():
            raise ValidationError("Property name cannot be blank", errors={"name": ["Required"]})
        self.guard.authorize(GuardedOperation.edit, prop, self.schema)

        snapshot = self._snapshot()
        self._replace_property(prop.model_copy(update={"name": name.strip()}))
        updated = self._dispatch("rename property", snapshot, lambda: self.api.rename_property(property_id, name.strip()))
        result = self._reconcile_property(updated)
        self._invalidate("property:rename")
        return result

    def update_property_type(self, property_id: str, new_type: Union[PropertyType, str]) -> Optional[Property]:
        prop = self._property(property_id)
        new_type = PropertyType(new_type)
        self.guard.authorize(GuardedOperation.edit, prop, self.schema)
        # Disallowed conversions stop here, before anything is sent
        converted = self.registry.convert_property(prop, new_type)

        snapshot = self._snapshot()
        self._replace_property(converted)
        for r in self.records:
            if property_id in r.properties:
                r.properties[property_id] = self.registry.convert_value(prop.type, new_type, r.properties[property_id])
        updated = self._dispatch(
            "change property type",
            snapshot,
            lambda: self.api.change_property_type(property_id, new_type),
        )
        result = self._reconcile_property(updated)
        self._invalidate("property:type")
        return result

    def freeze_property(
        self,
        property_id: str,
        *,
        allow_edit: Optional[bool] = None,
        allow_hide: Optional[bool] = None,
        allow_delete: Optional[bool] = None,
        reason: Optional[str] = None,
    ) -> Optional[Property]:
        prop = self._property(property_id)
        self.guard.authorize_database(self.schema)

        snapshot = self._snapshot()
        self._replace_property(
            prop.model_copy(
                update={
                    "frozen": True,
                    "allow_edit": allow_edit,
                    "allow_hide": allow_hide,
                    "allow_delete": allow_delete,
                    "frozen_reason": reason,
                }
            )
        )
        updated = self._dispatch(
            "freeze property",
            snapshot,
            lambda: self.api.freeze_property(
                property_id,
                True,
                allow_edit=allow_edit,
                allow_hide=allow_hide,
                allow_delete=allow_delete,
                reason=reason,
            ),
        )
        result = self._reconcile_property(updated)
        self._invalidate("property:freeze")
        return result

    def unfreeze_property(self, property_id: str) -> Optional[Property]:
        prop = self._property(property_id)
        self.guard.authorize_database(self.schema)

        snapshot = self._snapshot()
        self._replace_property(
            prop.model_copy(
                update={
                    "frozen": False,
                    "allow_edit": None,
                    "allow_hide": None,
                    "allow_delete": None,
                    "frozen_reason": None,
                }
            )
        )
        updated = self._dispatch("unfreeze property", snapshot, lambda: self.api.freeze_property(property_id, False))
        result = self._reconcile_property(updated)
        self._invalidate("property:unfreeze")
        return result

    def hide_property(self, property_id: str) -> Optional[Property]:
        schema = hide_globally(self.schema, property_id, self.guard)

        snapshot = self._snapshot()
        self._schema = schema
        updated = self._dispatch("hide property", snapshot, lambda: self.api.hide_property(property_id, True))
        result = self._reconcile_property(updated)
        self._invalidate("property:hide")
        return result

    def unhide_property(self, property_id: str) -> Optional[Property]:
        schema = unhide_globally(self.schema, property_id)

        snapshot = self._snapshot()
        self._schema = schema
        updated = self._dispatch("unhide property", snapshot, lambda: self.api.hide_property(property_id, False))
        result = self._reconcile_property(updated)
        self._invalidate("property:unhide")
        return result

    def delete_property(self, property_id: str) -> Optional[Property]:
        """Record values and view references under the id stay behind."""
        prop = self._property(property_id)
        self.guard.authorize(GuardedOperation.delete, prop, self.schema)

        snapshot = self._snapshot()
        self._set_properties(_resequence([p for p in self.schema.properties if p.id != property_id]))
        deleted = self._dispatch("delete property", snapshot, lambda: self.api.delete_property(property_id))
        self._invalidate("property:delete")
        return deleted

    def duplicate_property(self, property_id: str, name: Optional[str] = None) -> Optional[Property]:
        """The copy's id is assigned by the store, so it lands locally on response."""
        self._property(property_id)
        self.guard.authorize_database(self.schema)

        snapshot = self._snapshot()
        created = self._dispatch("duplicate property", snapshot, lambda: self.api.duplicate_property(property_id, name))
        if created is None:
            return None
        if self.schema.get_property(property_id) is None:
            log.debug("Discarding duplicate of deleted property %s", property_id)
            return None
        props = list(self.schema.properties)
        index = [p.id for p in props].index(property_id)
        props.insert(index + 1, created)
        self._set_properties(_resequence(props))
        for r in self.records:
            if property_id in r.properties:
                r.properties[created.id] = r.properties[property_id]
        self._invalidate("property:duplicate")
        return created

    # ---- View operations ----

    def _validate_view(self, view: ViewDefinition) -> None:
        if self.config is not None and view.type not in self.config.supported_view_types:
            raise ValidationError(
                f"{view.type.value} views are not supported in {self.config.module}",
                errors={"type": [f"Unsupported view type {view.type.value}"]},
            )
        check_view_references(self.schema, view, self.registry)

    def create_view(self, view: Union[ViewDefinition, Mapping[str, Any]]) -> Optional[ViewDefinition]:
        view = _parse(ViewDefinition, view, "Invalid view")
        if self.schema.get_view(view.id) is not None:
            raise ValidationError(f"View '{view.id}' already exists", errors={"id": ["Duplicate view id"]})
        self._validate_view(view)

        snapshot = self._snapshot()
        self._set_views([*self.schema.views, view])
        created = self._dispatch("create view", snapshot, lambda: self.api.create_view(view))
        result = self._reconcile_view(created, view.id)
        self._invalidate("view:create")
        return result

    def update_view(self, view_id: str, changes: Mapping[str, Any]) -> Optional[ViewDefinition]:
        current = self._view(view_id)
        patch = _parse(ViewUpdate, changes, "Invalid view")
        data = current.model_dump()
        data.update(patch.model_dump(exclude_unset=True))
        updated_local = _parse(ViewDefinition, data, "Invalid view")
        self._validate_view(updated_local)

        snapshot = self._snapshot()
        self._set_views([updated_local if v.id == view_id else v for v in self.schema.views])
        wire = patch.model_dump(by_alias=True, exclude_unset=True, mode="json")
        updated = self._dispatch("update view", snapshot, lambda: self.api.update_view(view_id, wire))
        result = self._reconcile_view(updated)
        self._invalidate("view:update")
        return result

    def set_view_filters(self, view_id: str, filters: Sequence[Union[FilterRule, Mapping[str, Any]]]) -> Optional[ViewDefinition]:
        rules = [_parse(FilterRule, f, "Invalid filter") for f in filters]
        return self.update_view(view_id, {"filters": [r.model_dump() for r in rules]})

    def set_view_sorts(self, view_id: str, sorts: Sequence[Union[SortRule, Mapping[str, Any]]]) -> Optional[ViewDefinition]:
        rules = [_parse(SortRule, s, "Invalid sort") for s in sorts]
        return self.update_view(view_id, {"sorts": [r.model_dump() for r in rules]})

    def toggle_view_property(self, view_id: str, property_id: str, visible: bool) -> Optional[ViewDefinition]:
        toggled = toggle_view_property(self.schema, self._view(view_id), property_id, visible, self.guard)
        return self.update_view(view_id, {"visible_properties": toggled.visible_properties})

    def set_default_view(self, view_id: str) -> Optional[ViewDefinition]:
        return self.update_view(view_id, {"is_default": True})

    def delete_view(self, view_id: str) -> Optional[ViewDefinition]:
        self._view(view_id)

        snapshot = self._snapshot()
        self._set_views([v for v in self.schema.views if v.id != view_id])
        stale = self._projections.pop(view_id, None)
        if stale is not None:
            stale.close()
        deleted = self._dispatch("delete view", snapshot, lambda: self.api.delete_view(view_id))
        self._invalidate("view:delete")
        return deleted

    def duplicate_view(self, view_id: str, name: Optional[str] = None) -> Optional[ViewDefinition]:
        self._view(view_id)
        if self.config is not None and not self.config.capabilities.supports_view_duplication:
            raise UnsupportedOperation(f"{self.config.module} does not support view duplication")

        snapshot = self._snapshot()
        created = self._dispatch("duplicate view", snapshot, lambda: self.api.duplicate_view(view_id, name))
        if created is None:
            return None
        self._set_views([*self.schema.views, created])
        self._invalidate("view:duplicate")
        return created

    # ---- Record operations ----

    def _check_record_values(self, values: Mapping[str, Any], *, creating: bool) -> Dict[str, Any]:
        self.guard.authorize_database(self.schema)
        clean = self.registry.validate_values(self.schema.properties, dict(values))
        errors: Dict[str, List[str]] = {}
        for prop in self.schema.properties:
            if not prop.required or not self.registry.is_writable(prop.type):
                continue
            if not creating and prop.id not in clean:
                continue
            if self.registry.is_blank(prop.type, clean.get(prop.id)):
                errors[prop.id] = ["This field is required"]
        if errors:
            raise ValidationError("Missing required values", errors=errors)
        return clean

    def create_record(self, values: Mapping[str, Any], record_id: Optional[str] = None) -> Optional[Record]:
        """Created on the store first; it owns record ids and system timestamps."""
        clean = self._check_record_values(values, creating=True)

        snapshot = self._snapshot()
        created = self._dispatch("create record", snapshot, lambda: self.api.create_record(clean, record_id))
        if created is None:
            return None
        self.records.append(created)
        self._invalidate("record:create")
        return created

    def update_record_property(self, record_id: str, property_id: str, value: Any) -> Optional[Record]:
        record = self._record(record_id)
        prop = self._property(property_id)
        self.registry.check_writable(prop)
        self.guard.authorize(GuardedOperation.edit, prop, self.schema)
        clean = self._check_record_values({property_id: value}, creating=False)

        snapshot = self._snapshot()
        record.properties[property_id] = clean[property_id]
        updated = self._dispatch("update record", snapshot, lambda: self.api.update_record(record_id, clean))
        result = self._reconcile_record(updated)
        self._invalidate("record:update")
        return result

    def edit_cell(self, record_id: str, property_id: str) -> RecordEditSession:
        """A session whose commits go through the facade and publish invalidations."""
        record = self._record(record_id)

        def commit(rid: str, pid: str, value: Any) -> Any:
            updated = self.api.update_record(rid, {pid: value})
            self._reconcile_record(updated)
            self._invalidate("record:update")
            return updated

        def on_error(err: DocumentViewError) -> None:
            self._invalidate("rollback:update record")
            self._notify(f"Could not update record: {err.message}")

        return RecordEditSession(
            self.schema,
            record,
            property_id,
            commit,
            guard=self.guard,
            registry=self.registry,
            on_error=on_error,
        )

    def delete_record(self, record_id: str) -> Optional[Record]:
        self._record(record_id)
        self.guard.authorize_database(self.schema)

        snapshot = self._snapshot()
        self.records = [r for r in self.records if r.id != record_id]
        deleted = self._dispatch("delete record", snapshot, lambda: self.api.delete_record(record_id))
        self._invalidate("record:delete")
        return deleted

    def bulk_update_records(self, ids: Sequence[str], values: Mapping[str, Any]) -> Optional[List[Record]]:
        if not ids:
            raise ValidationError("No records selected", errors={"ids": ["At least one id is required"]})
        if self.config is not None and not self.config.capabilities.supports_bulk:
            raise UnsupportedOperation(f"{self.config.module} does not support bulk operations")
        targets = [self._record(rid) for rid in ids]
        clean = self._check_record_values(values, creating=False)
        for pid in clean:
            self.guard.authorize(GuardedOperation.edit, self._property(pid), self.schema)

        snapshot = self._snapshot()
        for r in targets:
            r.properties.update(clean)
        updated = self._dispatch("update records", snapshot, lambda: self.api.bulk_update_records(list(ids), clean))
        if updated is not None:
            updated = [r for r in (self._reconcile_record(u) for u in updated) if r is not None]
        self._invalidate("record:bulk-update")
        return updated

    def bulk_delete_records(self, ids: Sequence[str]) -> Optional[int]:
        if not ids:
            raise ValidationError("No records selected", errors={"ids": ["At least one id is required"]})
        if self.config is not None and not self.config.capabilities.supports_bulk:
            raise UnsupportedOperation(f"{self.config.module} does not support bulk operations")
        for rid in ids:
            self._record(rid)
        self.guard.authorize_database(self.schema)

        snapshot = self._snapshot()
        doomed = set(ids)
        self.records = [r for r in self.records if r.id not in doomed]
        deleted = self._dispatch("delete records", snapshot, lambda: self.api.bulk_delete_records(list(ids)))
        self._invalidate("record:bulk-delete")
        return deleted
