# File: /docview/crud/properties.py | Version: 1.0 | Title: CRUD helpers for schema properties
from __future__ import annotations

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from docview.core.errors import NotFoundError, ValidationError
from docview.core.modules import ModuleConfig
from docview.engine.frozen import guard
from docview.engine.property_types import registry
from docview.engine.types import GuardedOperation, InsertPosition, Property, PropertyType
from docview.models.documents import DocumentSchema, SchemaProperty
from docview.schemas.documents import PropertyCreate, PropertyFreeze, PropertyUpdate
from docview.crud.databases import property_from_row, schema_meta, validated, write_property

log = logging.getLogger(__name__)

# Structural fields; touching any of them is an "edit" of the property
_EDIT_FIELDS = {
    "name",
    "type",
    "required",
    "description",
    "select_options",
    "relation_config",
    "formula_config",
    "rollup_config",
}
_FREEZE_FIELDS = ("frozen", "allow_edit", "allow_hide", "allow_delete", "frozen_reason")


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_") or "property"


def _unique_id(schema_row: DocumentSchema, base: str) -> str:
    taken = {p.property_id for p in schema_row.properties}
    candidate, n = base, 2
    while candidate in taken:
        candidate = f"{base}_{n}"
        n += 1
    return candidate


def get_property_row(schema_row: DocumentSchema, property_id: str) -> SchemaProperty:
    for row in schema_row.properties:
        if row.property_id == property_id:
            return row
    raise NotFoundError("property", property_id)


def _check_supported(config: ModuleConfig, ptype: PropertyType) -> None:
    if ptype not in config.supported_property_types:
        raise ValidationError(
            f"{ptype.value} properties are not supported in {config.module}",
            errors={"type": [f"Unsupported property type {ptype.value}"]},
        )


def _clamp(index: int, size: int) -> int:
    return max(0, min(index, size))


def _resequence(rows: List[SchemaProperty]) -> None:
    """Column position and ``order`` are kept equal."""
    for i, r in enumerate(rows):
        r.position = i
        r.display_order = i


def _convert_records(schema_row: DocumentSchema, property_id: str, src: PropertyType, dst: PropertyType) -> int:
    changed = 0
    for rec in schema_row.records:
        values = dict(rec.values or {})
        if property_id in values:
            values[property_id] = registry.convert_value(src, dst, values[property_id])
            rec.values = values
            changed += 1
    return changed


def _save(db: Session, row: SchemaProperty) -> Property:
    db.commit()
    db.refresh(row)
    return property_from_row(row)


def list_properties(schema_row: DocumentSchema) -> List[Property]:
    return [property_from_row(p) for p in schema_row.properties]


def _build(schema_row: DocumentSchema, config: ModuleConfig, body: PropertyCreate) -> Property:
    data = body.model_dump(by_alias=True, exclude_none=True)
    data["id"] = body.id or _unique_id(schema_row, _slug(body.name))
    if any(p.property_id == data["id"] for p in schema_row.properties):
        raise ValidationError(f"Property '{data['id']}' already exists", errors={"id": ["Duplicate property id"]})
    prop = validated(Property, data, "Invalid property")
    _check_supported(config, prop.type)
    return prop


def create_property(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    body: PropertyCreate,
    *,
    at: Optional[int] = None,
) -> Property:
    guard.authorize_database(schema_meta(schema_row))
    prop = _build(schema_row, config, body)
    rows = list(schema_row.properties)
    if at is None:
        at = len(rows) if body.order is None else body.order
    row = write_property(SchemaProperty(), prop)
    rows.insert(_clamp(at, len(rows)), row)
    schema_row.properties.append(row)
    _resequence(rows)
    db.commit()
    db.refresh(row)
    log.info("Created property %s.%s (%s)", schema_row.module, prop.id, prop.type.value)
    return property_from_row(row)


def update_property(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    property_id: str,
    patch: PropertyUpdate,
) -> Property:
    row = get_property_row(schema_row, property_id)
    current = property_from_row(row)
    meta = schema_meta(schema_row)
    changes = patch.model_dump(exclude_unset=True)

    if _EDIT_FIELDS & set(changes):
        guard.authorize(GuardedOperation.edit, current, meta)
    if changes.get("visible") is False:
        guard.authorize(GuardedOperation.hide, current, meta)

    new_type = changes.get("type")
    if new_type is not None and new_type != current.type:
        registry.check_conversion(current.type, new_type)
        _check_supported(config, new_type)

    data = current.model_dump()
    data.update(changes)
    updated = validated(Property, data, "Invalid property")

    if updated.type != current.type:
        n = _convert_records(schema_row, property_id, current.type, updated.type)
        log.info("Converted %s.%s %s -> %s (%d records)", schema_row.module, property_id, current.type.value, updated.type.value, n)
    write_property(row, updated)
    if changes.get("order") is not None:
        rows = [r for r in schema_row.properties if r is not row]
        rows.insert(_clamp(changes["order"], len(rows)), row)
        _resequence(rows)
    return _save(db, row)


def replace_property(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    property_id: str,
    body: PropertyCreate,
) -> Property:
    """Full replace. Freeze flags are owned by the freeze endpoint and survive."""
    data = body.model_dump(exclude={"id", "frozen", *_FREEZE_FIELDS[1:]})
    if data["order"] is None:
        data.pop("order")
    patch = PropertyUpdate.model_validate(data)
    return update_property(db, schema_row, config, property_id, patch)


def rename_property(db: Session, schema_row: DocumentSchema, config: ModuleConfig, property_id: str, name: str) -> Property:
    return update_property(db, schema_row, config, property_id, PropertyUpdate(name=name))


def change_property_type(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    property_id: str,
    new_type: PropertyType,
) -> Property:
    return update_property(db, schema_row, config, property_id, PropertyUpdate(type=new_type))


def hide_property(db: Session, schema_row: DocumentSchema, property_id: str, hidden: bool) -> Property:
    row = get_property_row(schema_row, property_id)
    if hidden:
        guard.authorize(GuardedOperation.hide, property_from_row(row), schema_meta(schema_row))
    row.visible = not hidden
    return _save(db, row)


def freeze_property(db: Session, schema_row: DocumentSchema, property_id: str, body: PropertyFreeze) -> Property:
    guard.authorize_database(schema_meta(schema_row))
    row = get_property_row(schema_row, property_id)
    row.frozen = body.frozen
    if body.frozen:
        row.allow_edit = body.allow_edit
        row.allow_hide = body.allow_hide
        row.allow_delete = body.allow_delete
        row.frozen_reason = body.reason
    else:
        row.allow_edit = row.allow_hide = row.allow_delete = None
        row.frozen_reason = None
    log.info("Property %s.%s %s", schema_row.module, property_id, "frozen" if body.frozen else "unfrozen")
    return _save(db, row)


def delete_property(db: Session, schema_row: DocumentSchema, property_id: str) -> Property:
    """Stored values and view references under the id are left behind."""
    row = get_property_row(schema_row, property_id)
    prop = property_from_row(row)
    guard.authorize(GuardedOperation.delete, prop, schema_meta(schema_row))
    schema_row.properties.remove(row)
    _resequence(list(schema_row.properties))
    db.commit()
    log.info("Deleted property %s.%s", schema_row.module, property_id)
    return prop


def duplicate_property(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    property_id: str,
    name: Optional[str] = None,
) -> Property:
    source = property_from_row(get_property_row(schema_row, property_id))
    body = PropertyCreate.model_validate(
        source.model_dump(exclude={"id", "order", *_FREEZE_FIELDS}) | {"name": name or f"{source.name} (copy)"}
    )
    body.id = _unique_id(schema_row, f"{source.id}_copy")
    index = [p.property_id for p in schema_row.properties].index(property_id)
    created = create_property(db, schema_row, config, body, at=index + 1)
    for rec in schema_row.records:
        values = dict(rec.values or {})
        if property_id in values:
            values[created.id] = values[property_id]
            rec.values = values
    db.commit()
    return created


def insert_property(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    property_id: str,
    position: InsertPosition,
    body: PropertyCreate,
) -> Property:
    anchor = get_property_row(schema_row, property_id)
    index = list(schema_row.properties).index(anchor)
    at = index if position == InsertPosition.left else index + 1
    return create_property(db, schema_row, config, body, at=at)
