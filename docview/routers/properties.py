# File: /docview/routers/properties.py | Version: 1.0 | Title: Property endpoints
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from docview.core.modules import ModuleConfig
from docview.crud import properties as crud
from docview.crud.databases import property_from_row
from docview.dependencies import get_db, module_config, schema_row
from docview.models.documents import DocumentSchema
from docview.schemas.documents import (
    PropertyCreate,
    PropertyDuplicate,
    PropertyFreeze,
    PropertyHide,
    PropertyInsert,
    PropertyRename,
    PropertyTypeChange,
    PropertyUpdate,
)
from docview.schemas.envelope import ok

router = APIRouter(prefix="/{module}/properties", tags=["Properties"])


@router.get("", summary="List properties")
def list_properties(row: DocumentSchema = Depends(schema_row)):
    return ok([p.to_wire() for p in crud.list_properties(row)])


@router.post("", status_code=201, summary="Create a property")
def create_property(
    body: PropertyCreate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.create_property(db, row, config, body).to_wire(), "Property created")


@router.get("/{property_id}", summary="Get a property")
def get_property(property_id: str, row: DocumentSchema = Depends(schema_row)):
    return ok(property_from_row(crud.get_property_row(row, property_id)).to_wire())


@router.put("/{property_id}", summary="Replace a property")
def replace_property(
    property_id: str,
    body: PropertyCreate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.replace_property(db, row, config, property_id, body).to_wire(), "Property updated")


@router.patch("/{property_id}", summary="Update a property")
def update_property(
    property_id: str,
    body: PropertyUpdate,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.update_property(db, row, config, property_id, body).to_wire(), "Property updated")


@router.delete("/{property_id}", summary="Delete a property")
def delete_property(
    property_id: str,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.delete_property(db, row, property_id).to_wire(), "Property deleted")


@router.patch("/{property_id}/freeze", summary="Freeze or unfreeze a property")
def freeze_property(
    property_id: str,
    body: PropertyFreeze,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.freeze_property(db, row, property_id, body).to_wire())


@router.patch("/{property_id}/hide", summary="Hide or unhide a property on the schema")
def hide_property(
    property_id: str,
    body: PropertyHide,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.hide_property(db, row, property_id, body.hidden).to_wire())


@router.patch("/{property_id}/type", summary="Change a property's type")
def change_property_type(
    property_id: str,
    body: PropertyTypeChange,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.change_property_type(db, row, config, property_id, body.type).to_wire())


@router.patch("/{property_id}/name", summary="Rename a property")
def rename_property(
    property_id: str,
    body: PropertyRename,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    return ok(crud.rename_property(db, row, config, property_id, body.name).to_wire())


@router.post("/{property_id}/duplicate", status_code=201, summary="Duplicate a property with its values")
def duplicate_property(
    property_id: str,
    body: PropertyDuplicate | None = None,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    name = body.name if body else None
    return ok(crud.duplicate_property(db, row, config, property_id, name).to_wire(), "Property duplicated")


@router.post("/{property_id}/insert", status_code=201, summary="Insert a property left or right of another")
def insert_property(
    property_id: str,
    body: PropertyInsert,
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    created = crud.insert_property(db, row, config, property_id, body.position, body.property)
    return ok(created.to_wire(), "Property inserted")
