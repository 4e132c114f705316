# File: /docview/routers/views.py | Version: 2.0 | Title: Saved view endpoints
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from docview.core.errors import UnsupportedOperation
from docview.core.modules import ModuleConfig
from docview.crud import views as crud
from docview.crud.databases import view_from_row
from docview.dependencies import get_db, module_config, schema_row
from docview.models.documents import DocumentSchema
from docview.schemas.documents import ViewCreate, ViewDuplicate, ViewUpdate
from docview.schemas.envelope import ok

router = APIRouter(prefix="/{module}/views", tags=["Views"])


@router.get("", summary="List views")
def list_views(row: DocumentSchema = Depends(schema_row)):
    return ok([v.to_wire() for v in crud.list_views(row)])


@router.post("", status_code=201, summary="Create a view")
def create_view(
    body: ViewCreate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.create_view(db, row, config, body).to_wire(), "View created")


# Declared before /{view_id} so "default" is not read as an id
@router.get("/default", summary="The default view (first view when none is flagged)")
def get_default_view(row: DocumentSchema = Depends(schema_row)):
    return ok(crud.get_default_view(row).to_wire())


@router.get("/{view_id}", summary="Get a view")
def get_view(view_id: str, row: DocumentSchema = Depends(schema_row)):
    return ok(view_from_row(crud.get_view_row(row, view_id)).to_wire())


@router.put("/{view_id}", summary="Replace a view")
def replace_view(
    view_id: str,
    body: ViewCreate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.replace_view(db, row, config, view_id, body).to_wire(), "View updated")


@router.patch("/{view_id}", summary="Update a view")
def update_view(
    view_id: str,
    body: ViewUpdate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.update_view(db, row, config, view_id, body).to_wire(), "View updated")


@router.delete("/{view_id}", summary="Delete a view")
def delete_view(
    view_id: str,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.delete_view(db, row, view_id).to_wire(), "View deleted")


@router.post("/{view_id}/duplicate", status_code=201, summary="Duplicate a view")
def duplicate_view(
    view_id: str,
    body: ViewDuplicate | None = None,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    if not config.capabilities.supports_view_duplication:
        raise UnsupportedOperation(f"{config.module} does not support view duplication")
    name = body.name if body else None
    return ok(crud.duplicate_view(db, row, config, view_id, name).to_wire(), "View duplicated")
