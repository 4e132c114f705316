# File: /docview/crud/records.py | Version: 1.0 | Title: CRUD helpers for records (+ view application)
from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from docview.core.errors import NotFoundError, ValidationError
from docview.engine.filtering import filter_records, search_records
from docview.engine.frozen import guard
from docview.engine.property_types import registry
from docview.engine.sorting import sort_records
from docview.engine.types import FilterRule, GuardedOperation, Record, Schema, SortRule, ViewDefinition
from docview.engine.visibility import visible_properties
from docview.models.documents import DocumentSchema, SchemaRecord
from docview.crud.databases import record_from_row

log = logging.getLogger(__name__)


def get_record_row(db: Session, schema_row: DocumentSchema, record_id: str) -> SchemaRecord:
    row = db.get(SchemaRecord, record_id)
    if row is None or row.schema_id != schema_row.id:
        raise NotFoundError("record", record_id)
    return row


def _check_required(schema: Schema, values: Dict[str, Any], keys: Optional[Sequence[str]] = None) -> None:
    """Required properties must hold a value; ``keys`` limits the check to a patch."""
    errors: Dict[str, List[str]] = {}
    for prop in schema.properties:
        if not prop.required or not registry.is_writable(prop.type):
            continue
        if keys is not None and prop.id not in keys:
            continue
        if registry.is_blank(prop.type, values.get(prop.id)):
            errors[prop.id] = ["This field is required"]
    if errors:
        raise ValidationError("Missing required values", errors=errors)


def _authorize_edits(schema: Schema, before: Dict[str, Any], after: Dict[str, Any]) -> None:
    guard.authorize_database(schema)
    for pid, value in after.items():
        prop = schema.get_property(pid)
        if prop is not None and before.get(pid) != value:
            guard.authorize(GuardedOperation.edit, prop, schema)


def list_records(
    db: Session,
    schema_row: DocumentSchema,
    schema: Schema,
    view: Optional[ViewDefinition],
    *,
    search: Optional[str] = None,
    extra_filters: Sequence[FilterRule] = (),
    sorts: Optional[Sequence[SortRule]] = None,
    page: int = 1,
    limit: int = 50,
) -> Dict[str, Any]:
    records = [record_from_row(r) for r in schema_row.records]
    filters = list(view.filters if view else []) + list(extra_filters)
    kept = filter_records(records, filters, schema)
    if search:
        kept = search_records(kept, search, visible_properties(schema, view))
    ordered = sort_records(kept, sorts if sorts else (view.sorts if view else []), schema)

    total = len(ordered)
    start = (page - 1) * limit
    window = ordered[start : start + limit]
    return {
        "records": [r.to_wire() for r in window],
        "total": total,
        "page": page,
        "limit": limit,
        "hasNext": start + limit < total,
        "hasPrev": page > 1,
    }


def create_record(
    db: Session,
    schema_row: DocumentSchema,
    schema: Schema,
    values: Dict[str, Any],
    *,
    record_id: Optional[str] = None,
    user: Optional[str] = None,
) -> Record:
    guard.authorize_database(schema)
    clean = registry.validate_values(schema.properties, values)
    _check_required(schema, clean)
    if record_id and db.get(SchemaRecord, record_id) is not None:
        raise ValidationError(f"Record '{record_id}' already exists", errors={"id": ["Duplicate record id"]})
    last = db.query(func.max(SchemaRecord.position)).filter(SchemaRecord.schema_id == schema_row.id).scalar()
    row = SchemaRecord(
        schema_id=schema_row.id,
        values=clean,
        position=(last if last is not None else -1) + 1,
        created_by=user,
        last_edited_by=user,
    )
    if record_id:
        row.id = record_id
    db.add(row)
    db.commit()
    db.refresh(row)
    return record_from_row(row)


def update_record(
    db: Session,
    schema: Schema,
    row: SchemaRecord,
    values: Dict[str, Any],
    *,
    replace: bool = False,
    user: Optional[str] = None,
) -> Record:
    clean = registry.validate_values(schema.properties, values)
    before = dict(row.values or {})
    if replace:
        # Values under deleted properties are not the caller's to drop
        orphans = {k: v for k, v in before.items() if schema.get_property(k) is None}
        after = {**orphans, **clean}
        _check_required(schema, after)
    else:
        after = {**before, **clean}
        _check_required(schema, after, keys=list(clean))
    _authorize_edits(schema, before, {k: after.get(k) for k in set(before) | set(after)})

    row.values = after
    row.updated_at = datetime.now(UTC)
    if user:
        row.last_edited_by = user
    db.commit()
    db.refresh(row)
    return record_from_row(row)


def delete_record(db: Session, schema: Schema, row: SchemaRecord) -> Record:
    guard.authorize_database(schema)
    record = record_from_row(row)
    db.delete(row)
    db.commit()
    return record


def bulk_update_records(
    db: Session,
    schema_row: DocumentSchema,
    schema: Schema,
    ids: Sequence[str],
    values: Dict[str, Any],
    *,
    user: Optional[str] = None,
) -> List[Record]:
    rows = [get_record_row(db, schema_row, rid) for rid in ids]
    clean = registry.validate_values(schema.properties, values)
    guard.authorize_database(schema)
    for pid in clean:
        prop = schema.get_property(pid)
        if prop is not None:
            guard.authorize(GuardedOperation.edit, prop, schema)
    _check_required(schema, clean, keys=list(clean))
    now = datetime.now(UTC)
    for row in rows:
        row.values = {**(row.values or {}), **clean}
        row.updated_at = now
        if user:
            row.last_edited_by = user
    db.commit()
    log.info("Bulk-updated %d record(s) in %s", len(rows), schema_row.module)
    return [record_from_row(r) for r in rows]


def bulk_delete_records(db: Session, schema_row: DocumentSchema, schema: Schema, ids: Sequence[str]) -> int:
    guard.authorize_database(schema)
    rows = (
        db.query(SchemaRecord)
        .filter(SchemaRecord.schema_id == schema_row.id, SchemaRecord.id.in_(list(ids)))
        .all()
    )
    for row in rows:
        db.delete(row)
    db.commit()
    log.info("Bulk-deleted %d record(s) in %s", len(rows), schema_row.module)
    return len(rows)
