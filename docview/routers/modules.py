# File: /docview/routers/modules.py | Version: 1.0 | Title: Module config and database freeze endpoints
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from docview.core.modules import ModuleConfig
from docview.crud.databases import freeze_database, schema_meta
from docview.dependencies import get_db, module_config, schema_row
from docview.models.documents import DocumentSchema
from docview.schemas.documents import DatabaseFreeze
from docview.schemas.envelope import ok

router = APIRouter(prefix="/{module}", tags=["Modules"])


@router.get("/config", summary="Module capabilities, defaults and frozen-property config")
def get_config(
    config: ModuleConfig = Depends(module_config),
    row: DocumentSchema = Depends(schema_row),
):
    data = config.model_copy(update={"database": schema_meta(row)}).to_wire()
    return ok(data)


@router.patch("/freeze", summary="Freeze or unfreeze the whole database")
def freeze(
    body: DatabaseFreeze,
    row: DocumentSchema = Depends(schema_row),
    db: Session = Depends(get_db),
):
    schema = freeze_database(db, row, frozen=body.frozen, reason=body.reason)
    return ok(schema.to_wire(), "Database frozen" if body.frozen else "Database unfrozen")
