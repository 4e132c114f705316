# File: /docview/dependencies.py | Version: 2.0 | Title: Shared FastAPI dependencies
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from docview.core.modules import ModuleConfig, get_module_config
from docview.crud.databases import get_or_seed_schema
from docview.db.session import get_db
from docview.models.documents import DocumentSchema

__all__ = ["get_db", "module_config", "schema_row", "current_user"]


def module_config(module: str) -> ModuleConfig:
    return get_module_config(module)


def schema_row(
    config: ModuleConfig = Depends(module_config),
    db: Session = Depends(get_db),
) -> DocumentSchema:
    """The module's schema row, seeded from its configuration on first access."""
    return get_or_seed_schema(db, config)


def current_user(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    # No authentication; callers may name themselves for createdBy/lastEditedBy
    return x_user_id
