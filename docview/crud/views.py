# File: /docview/crud/views.py | Version: 2.0 | Title: CRUD helpers for saved views
from __future__ import annotations

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from docview.core.errors import NotFoundError, ValidationError
from docview.core.modules import ModuleConfig
from docview.engine.projection import check_view_references, default_view
from docview.engine.types import ViewDefinition
from docview.models.documents import DocumentSchema, SchemaView
from docview.schemas.documents import ViewCreate, ViewUpdate
from docview.crud.databases import schema_from_row, validated, view_from_row, write_view

log = logging.getLogger(__name__)


def _unique_id(schema_row: DocumentSchema, name: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "view"
    taken = {v.view_id for v in schema_row.views}
    candidate, n = base, 2
    while candidate in taken:
        candidate = f"{base}_{n}"
        n += 1
    return candidate


def get_view_row(schema_row: DocumentSchema, view_id: str) -> SchemaView:
    for row in schema_row.views:
        if row.view_id == view_id:
            return row
    raise NotFoundError("view", view_id)


def _check_supported(config: ModuleConfig, view: ViewDefinition) -> None:
    if view.type not in config.supported_view_types:
        raise ValidationError(
            f"{view.type.value} views are not supported in {config.module}",
            errors={"type": [f"Unsupported view type {view.type.value}"]},
        )


def _clear_other_defaults(schema_row: DocumentSchema, keep: SchemaView) -> None:
    for row in schema_row.views:
        if row is not keep and row.is_default:
            row.is_default = False


def list_views(schema_row: DocumentSchema) -> List[ViewDefinition]:
    return [view_from_row(v) for v in schema_row.views]


def get_default_view(schema_row: DocumentSchema) -> ViewDefinition:
    view = default_view(list_views(schema_row))
    if view is None:
        raise NotFoundError("view")
    return view


def create_view(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    body: ViewCreate,
) -> ViewDefinition:
    data = body.model_dump(by_alias=True)
    data["id"] = body.id or _unique_id(schema_row, body.name)
    if any(v.view_id == data["id"] for v in schema_row.views):
        raise ValidationError(f"View '{data['id']}' already exists", errors={"id": ["Duplicate view id"]})
    view = validated(ViewDefinition, data, "Invalid view")
    _check_supported(config, view)
    check_view_references(schema_from_row(schema_row), view)

    row = write_view(SchemaView(position=len(schema_row.views)), view)
    schema_row.views.append(row)
    if view.is_default:
        _clear_other_defaults(schema_row, row)
    db.commit()
    db.refresh(row)
    log.info("Created view %s.%s", schema_row.module, view.id)
    return view_from_row(row)


def update_view(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    view_id: str,
    patch: ViewUpdate,
    *,
    replace: bool = False,
) -> ViewDefinition:
    row = get_view_row(schema_row, view_id)
    current = view_from_row(row)
    changes = patch.model_dump(exclude_unset=not replace)
    if replace:
        # PUT: omitted collections reset, scalars keep their defaults
        changes = {k: v for k, v in changes.items() if v is not None or k in {"group_by", "description"}}
    data = current.model_dump()
    data.update(changes)
    view = validated(ViewDefinition, data, "Invalid view")
    _check_supported(config, view)
    check_view_references(schema_from_row(schema_row), view)

    write_view(row, view)
    if view.is_default:
        _clear_other_defaults(schema_row, row)
    db.commit()
    db.refresh(row)
    return view_from_row(row)


def replace_view(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    view_id: str,
    body: ViewCreate,
) -> ViewDefinition:
    patch = ViewUpdate.model_validate(body.model_dump(exclude={"id"}))
    return update_view(db, schema_row, config, view_id, patch, replace=True)


def delete_view(db: Session, schema_row: DocumentSchema, view_id: str) -> ViewDefinition:
    row = get_view_row(schema_row, view_id)
    view = view_from_row(row)
    schema_row.views.remove(row)
    for i, r in enumerate(schema_row.views):
        r.position = i
    db.commit()
    log.info("Deleted view %s.%s", schema_row.module, view_id)
    return view


def duplicate_view(
    db: Session,
    schema_row: DocumentSchema,
    config: ModuleConfig,
    view_id: str,
    name: Optional[str] = None,
) -> ViewDefinition:
    source = view_from_row(get_view_row(schema_row, view_id))
    name = name or f"{source.name} (copy)"
    body = ViewCreate.model_validate(source.model_dump(exclude={"id", "is_default", "name"}) | {"name": name})
    body.id = _unique_id(schema_row, f"{source.id}_copy")
    return create_view(db, schema_row, config, body)
