# File: /docview/crud/databases.py | Version: 1.0 | Title: Schema loading, seeding and row <-> engine conversion
from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from docview.core.errors import ValidationError
from docview.core.modules import ModuleConfig
from docview.engine.frozen import apply_frozen_config
from docview.engine.types import Property, Record, Schema, ViewDefinition
from docview.models.documents import DocumentSchema, SchemaProperty, SchemaRecord, SchemaView

log = logging.getLogger(__name__)


# ---- Row -> engine ----


def property_from_row(row: SchemaProperty) -> Property:
    return Property.model_validate(
        {
            "id": row.property_id,
            "name": row.name,
            "type": row.type,
            "required": bool(row.required),
            "frozen": bool(row.frozen),
            "visible": bool(row.visible),
            "order": row.display_order or 0,
            "description": row.description,
            "selectOptions": row.select_options,
            "relationConfig": row.relation_config,
            "formulaConfig": row.formula_config,
            "rollupConfig": row.rollup_config,
            "allowEdit": row.allow_edit,
            "allowHide": row.allow_hide,
            "allowDelete": row.allow_delete,
            "frozenReason": row.frozen_reason,
        }
    )


def view_from_row(row: SchemaView) -> ViewDefinition:
    return ViewDefinition.model_validate(
        {
            "id": row.view_id,
            "name": row.name,
            "type": row.type,
            "isDefault": bool(row.is_default),
            "filters": row.filters or [],
            "sorts": row.sorts or [],
            "visibleProperties": row.visible_properties or [],
            "groupBy": row.group_by,
            "description": row.description,
        }
    )


def record_from_row(row: SchemaRecord) -> Record:
    return Record(
        id=row.id,
        properties=dict(row.values or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
        created_by=row.created_by,
        last_edited_by=row.last_edited_by,
    )


def schema_meta(row: DocumentSchema) -> Schema:
    """Schema header without properties or views (enough for freeze checks)."""
    return Schema(
        id=row.id,
        name=row.name,
        frozen=bool(row.frozen),
        frozen_reason=row.frozen_reason,
        owner_id=row.owner_id,
        permissions=list(row.permissions or []),
        tags=list(row.tags or []),
    )


def schema_from_row(row: DocumentSchema) -> Schema:
    meta = schema_meta(row)
    return meta.model_copy(
        update={
            "properties": [property_from_row(p) for p in row.properties],
            "views": [view_from_row(v) for v in row.views],
        }
    )


# ---- Engine -> row ----


def write_property(row: SchemaProperty, prop: Property) -> SchemaProperty:
    row.property_id = prop.id
    row.name = prop.name
    row.type = prop.type.value
    row.required = prop.required
    row.frozen = prop.frozen
    row.visible = prop.visible
    row.display_order = prop.order
    row.description = prop.description
    row.select_options = [o.to_wire() for o in prop.select_options] if prop.select_options else None
    row.relation_config = prop.relation_config.to_wire() if prop.relation_config else None
    row.formula_config = prop.formula_config.to_wire() if prop.formula_config else None
    row.rollup_config = prop.rollup_config.to_wire() if prop.rollup_config else None
    row.allow_edit = prop.allow_edit
    row.allow_hide = prop.allow_hide
    row.allow_delete = prop.allow_delete
    row.frozen_reason = prop.frozen_reason
    return row


def write_view(row: SchemaView, view: ViewDefinition) -> SchemaView:
    row.view_id = view.id
    row.name = view.name
    row.type = view.type.value
    row.is_default = view.is_default
    row.filters = [f.to_wire() for f in view.filters]
    row.sorts = [s.to_wire() for s in view.sorts]
    row.visible_properties = list(view.visible_properties)
    row.group_by = view.group_by
    row.description = view.description
    return row


def validated(model, data: dict, message: str = "Validation failed"):
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e, message) from e


# ---- Schema rows ----


def get_schema_row(db: Session, module: str) -> Optional[DocumentSchema]:
    return db.query(DocumentSchema).filter(DocumentSchema.module == module).first()


def seed_schema(db: Session, config: ModuleConfig) -> DocumentSchema:
    base = Schema(
        id=config.module,
        name=config.display_name,
        properties=config.default_properties,
        views=config.default_views,
        permissions=config.permissions,
    )
    seeded = apply_frozen_config(base, config.frozen_config)

    row = DocumentSchema(module=config.module, name=config.display_name, permissions=list(config.permissions), tags=[])
    for i, p in enumerate(seeded.properties):
        row.properties.append(write_property(SchemaProperty(position=i), p))
    for i, v in enumerate(seeded.views):
        row.views.append(write_view(SchemaView(position=i), v))
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("Seeded schema for module %s (%d properties, %d views)", config.module, len(row.properties), len(row.views))
    return row


def get_or_seed_schema(db: Session, config: ModuleConfig) -> DocumentSchema:
    row = get_schema_row(db, config.module)
    return row if row is not None else seed_schema(db, config)


def freeze_database(db: Session, row: DocumentSchema, *, frozen: bool, reason: Optional[str]) -> Schema:
    row.frozen = frozen
    row.frozen_reason = reason if frozen else None
    db.commit()
    db.refresh(row)
    log.info("Schema %s %s", row.module, "frozen" if frozen else "unfrozen")
    return schema_from_row(row)
