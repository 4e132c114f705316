# File: /docview/routers/records.py | Version: 1.0 | Title: Record endpoints (list applies the view)
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from docview.core.config import settings
from docview.core.errors import NotFoundError, UnsupportedOperation
from docview.core.modules import ModuleConfig
from docview.core.query_params import filter_rules_for, parse_filters, parse_sorts
from docview.crud import records as crud
from docview.crud.databases import record_from_row, schema_from_row
from docview.dependencies import current_user, get_db, module_config, schema_row
from docview.models.documents import DocumentSchema
from docview.schemas.documents import RecordBulkDelete, RecordBulkUpdate, RecordCreate, RecordUpdate
from docview.schemas.envelope import ok

router = APIRouter(prefix="/{module}/records", tags=["Records"])


@router.get("", summary="List records through a view (filters, sorts, search, paging)")
def list_records(
    request: Request,
    view_id: Optional[str] = Query(default=None, alias="viewId"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    search: Optional[str] = Query(default=None),
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    caps = config.capabilities
    schema = schema_from_row(row)
    # Without viewId the records come back in stored order, unfiltered
    view = None
    if view_id:
        view = schema.get_view(view_id)
        if view is None:
            raise NotFoundError("view", view_id)

    items = request.query_params.multi_items()
    extra = filter_rules_for(schema, parse_filters(items), start_order=len(view.filters) if view else 0)
    sorts = parse_sorts(items)

    if caps.supports_pagination:
        limit = min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    else:
        page, limit = 1, max(len(row.records), 1)

    data = crud.list_records(
        db,
        row,
        schema,
        view,
        search=search if caps.supports_search else None,
        extra_filters=extra if caps.supports_filters else (),
        sorts=sorts if caps.supports_sorts else None,
        page=page,
        limit=limit,
    )
    return ok(data)


@router.post("", status_code=201, summary="Create a record")
def create_record(
    body: RecordCreate,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
    user: Optional[str] = Depends(current_user),
):
    record = crud.create_record(db, row, schema_from_row(row), body.properties, record_id=body.id, user=user)
    return ok(record.to_wire(), "Record created")


# Bulk routes are declared before /{record_id}
@router.patch("/bulk", summary="Apply the same values to many records")
def bulk_update_records(
    body: RecordBulkUpdate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
    user: Optional[str] = Depends(current_user),
):
    if not config.capabilities.supports_bulk:
        raise UnsupportedOperation(f"{config.module} does not support bulk operations")
    records = crud.bulk_update_records(db, row, schema_from_row(row), body.ids, body.properties, user=user)
    return ok([r.to_wire() for r in records], f"{len(records)} record(s) updated")


@router.delete("/bulk", summary="Delete many records")
def bulk_delete_records(
    body: RecordBulkDelete,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    if not config.capabilities.supports_bulk:
        raise UnsupportedOperation(f"{config.module} does not support bulk operations")
    deleted = crud.bulk_delete_records(db, row, schema_from_row(row), body.ids)
    return ok({"deleted": deleted}, f"{deleted} record(s) deleted")


@router.get("/{record_id}", summary="Get a record")
def get_record(
    record_id: str,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(record_from_row(crud.get_record_row(db, row, record_id)).to_wire())


@router.put("/{record_id}", summary="Replace a record's values")
def replace_record(
    record_id: str,
    body: RecordUpdate,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
    user: Optional[str] = Depends(current_user),
):
    target = crud.get_record_row(db, row, record_id)
    record = crud.update_record(db, schema_from_row(row), target, body.properties, replace=True, user=user)
    return ok(record.to_wire(), "Record updated")


@router.patch("/{record_id}", summary="Update some of a record's values")
def update_record(
    record_id: str,
    body: RecordUpdate,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
    user: Optional[str] = Depends(current_user),
):
    target = crud.get_record_row(db, row, record_id)
    record = crud.update_record(db, schema_from_row(row), target, body.properties, user=user)
    return ok(record.to_wire(), "Record updated")


@router.delete("/{record_id}", summary="Delete a record")
def delete_record(
    record_id: str,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    target = crud.get_record_row(db, row, record_id)
    return ok(crud.delete_record(db, schema_from_row(row), target).to_wire(), "Record deleted")
