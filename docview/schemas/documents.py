# File: /docview/schemas/documents.py | Version: 1.0 | Title: Request bodies for the document view API
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from docview.engine.types import (
    FilterRule,
    FormulaConfig,
    InsertPosition,
    PropertyType,
    RelationConfig,
    RollupConfig,
    SelectOption,
    SortRule,
    ViewType,
)

from ._base import BaseSchema


# ---- Properties ----


class PropertyCreate(BaseSchema):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    type: PropertyType
    required: bool = False
    frozen: bool = False
    visible: bool = True
    order: Optional[int] = None
    description: Optional[str] = None
    select_options: Optional[List[SelectOption]] = None
    relation_config: Optional[RelationConfig] = None
    formula_config: Optional[FormulaConfig] = None
    rollup_config: Optional[RollupConfig] = None
    allow_edit: Optional[bool] = None
    allow_hide: Optional[bool] = None
    allow_delete: Optional[bool] = None
    frozen_reason: Optional[str] = None


class PropertyUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[PropertyType] = None
    required: Optional[bool] = None
    visible: Optional[bool] = None
    order: Optional[int] = None
    description: Optional[str] = None
    select_options: Optional[List[SelectOption]] = None
    relation_config: Optional[RelationConfig] = None
    formula_config: Optional[FormulaConfig] = None
    rollup_config: Optional[RollupConfig] = None


class PropertyFreeze(BaseSchema):
    frozen: bool = True
    allow_edit: Optional[bool] = None
    allow_hide: Optional[bool] = None
    allow_delete: Optional[bool] = None
    reason: Optional[str] = None


class PropertyHide(BaseSchema):
    hidden: bool = True


class PropertyTypeChange(BaseSchema):
    type: PropertyType


class PropertyRename(BaseSchema):
    name: str = Field(min_length=1, max_length=200)


class PropertyDuplicate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


class PropertyInsert(BaseSchema):
    position: InsertPosition = InsertPosition.right
    property: PropertyCreate


# ---- Views ----


class ViewCreate(BaseSchema):
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    type: ViewType = ViewType.TABLE
    is_default: bool = False
    filters: List[FilterRule] = Field(default_factory=list)
    sorts: List[SortRule] = Field(default_factory=list)
    visible_properties: List[str] = Field(default_factory=list)
    group_by: Optional[str] = None
    description: Optional[str] = None


class ViewUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[ViewType] = None
    is_default: Optional[bool] = None
    filters: Optional[List[FilterRule]] = None
    sorts: Optional[List[SortRule]] = None
    visible_properties: Optional[List[str]] = None
    group_by: Optional[str] = None
    description: Optional[str] = None


class ViewDuplicate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)


# ---- Records ----


class RecordCreate(BaseSchema):
    id: Optional[str] = None
    properties: Dict[str, Any] = Field(default_factory=dict)


class RecordUpdate(BaseSchema):
    properties: Dict[str, Any] = Field(default_factory=dict)


class RecordBulkUpdate(BaseSchema):
    ids: List[str] = Field(min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)


class RecordBulkDelete(BaseSchema):
    ids: List[str] = Field(min_length=1)


# ---- Database ----


class DatabaseFreeze(BaseSchema):
    frozen: bool = True
    reason: Optional[str] = None
