# File: /docview/engine/types.py | Version: 1.0 | Title: Document View engine types (Pydantic v2)
"""
Data model shared by every engine component.

Wire format is camelCase (``selectOptions``, ``visibleProperties``,
``isDefault`` ...); Python attributes are snake_case. Models accept either
name on input and serialize with ``model_dump(by_alias=True)``.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ---- Enumerations ----


class PropertyType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    DATE = "DATE"
    CHECKBOX = "CHECKBOX"
    URL = "URL"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    RELATION = "RELATION"
    FORMULA = "FORMULA"
    ROLLUP = "ROLLUP"
    CREATED_TIME = "CREATED_TIME"
    CREATED_BY = "CREATED_BY"
    LAST_EDITED_TIME = "LAST_EDITED_TIME"
    LAST_EDITED_BY = "LAST_EDITED_BY"


SELECT_TYPES = frozenset({PropertyType.SELECT, PropertyType.MULTI_SELECT})
SYSTEM_TYPES = frozenset(
    {
        PropertyType.CREATED_TIME,
        PropertyType.CREATED_BY,
        PropertyType.LAST_EDITED_TIME,
        PropertyType.LAST_EDITED_BY,
    }
)
COMPUTED_TYPES = frozenset({PropertyType.FORMULA, PropertyType.ROLLUP})


class ViewType(str, Enum):
    TABLE = "TABLE"
    BOARD = "BOARD"
    GALLERY = "GALLERY"
    LIST = "LIST"
    CALENDAR = "CALENDAR"
    TIMELINE = "TIMELINE"


class FilterOperator(str, Enum):
    equals = "equals"
    not_equals = "not_equals"
    contains = "contains"
    not_contains = "not_contains"
    contains_all = "contains_all"
    starts_with = "starts_with"
    ends_with = "ends_with"
    greater_than = "greater_than"
    less_than = "less_than"
    greater_than_or_equal = "greater_than_or_equal"
    less_than_or_equal = "less_than_or_equal"
    before = "before"
    after = "after"
    on_or_before = "on_or_before"
    on_or_after = "on_or_after"
    checked = "checked"
    unchecked = "unchecked"
    is_empty = "is_empty"
    is_not_empty = "is_not_empty"


# Operators that never read FilterRule.value
VALUELESS_OPERATORS = frozenset(
    {
        FilterOperator.is_empty,
        FilterOperator.is_not_empty,
        FilterOperator.checked,
        FilterOperator.unchecked,
    }
)


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


class GuardedOperation(str, Enum):
    edit = "edit"
    hide = "hide"
    delete = "delete"


class InsertPosition(str, Enum):
    left = "left"
    right = "right"


# ---- Property ----


class SelectOption(EngineModel):
    id: str = Field(min_length=1)
    name: str
    color: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_backend_shape(cls, data: Any) -> Any:
        # {value, label, color} and {_id, name} are both seen on the wire
        if isinstance(data, dict):
            data = dict(data)
            if "id" not in data:
                data["id"] = data.get("_id") or data.get("value")
            if "name" not in data and "label" in data:
                data["name"] = data["label"]
        return data


class RelationConfig(EngineModel):
    database_id: str
    property_id: Optional[str] = None
    display_property: Optional[str] = None


class FormulaConfig(EngineModel):
    expression: str


class RollupConfig(EngineModel):
    relation_property_id: str
    target_property_id: str
    function: Literal[
        "count", "sum", "average", "min", "max", "latest", "earliest"
    ] = "count"


class Property(EngineModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=200)
    type: PropertyType
    required: bool = False
    frozen: bool = False
    # False means hidden globally on the schema
    visible: bool = True
    order: int = 0
    description: Optional[str] = None
    select_options: Optional[List[SelectOption]] = None
    relation_config: Optional[RelationConfig] = None
    formula_config: Optional[FormulaConfig] = None
    rollup_config: Optional[RollupConfig] = None

    # Frozen permissions; None means permitted
    allow_edit: Optional[bool] = None
    allow_hide: Optional[bool] = None
    allow_delete: Optional[bool] = None
    frozen_reason: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Property name cannot be blank")
        return v.strip()

    @model_validator(mode="after")
    def _select_options_match_type(self) -> "Property":
        if self.type in SELECT_TYPES:
            if not self.select_options:
                raise ValueError(
                    f"{self.type.value} properties require at least one select option"
                )
            ids = [o.id for o in self.select_options]
            if len(ids) != len(set(ids)):
                raise ValueError("Select option ids must be unique")
        elif self.select_options:
            raise ValueError(
                f"selectOptions are only allowed on SELECT/MULTI_SELECT, not {self.type.value}"
            )
        return self

    def option(self, option_id: Any) -> Optional[SelectOption]:
        for o in self.select_options or []:
            if o.id == option_id:
                return o
        return None


# ---- View ----


class FilterRule(EngineModel):
    property_id: str
    operator: FilterOperator
    value: Any = None
    order: Optional[int] = None


class SortRule(EngineModel):
    property_id: str
    direction: SortDirection = SortDirection.asc
    order: Optional[int] = None


class ViewDefinition(EngineModel):
    id: str
    name: str = Field(min_length=1, max_length=200)
    type: ViewType = ViewType.TABLE
    is_default: bool = False
    filters: List[FilterRule] = Field(default_factory=list)
    sorts: List[SortRule] = Field(default_factory=list)
    # Empty means "use defaults"
    visible_properties: List[str] = Field(default_factory=list)
    group_by: Optional[str] = None
    description: Optional[str] = None


# ---- Schema ----


class Schema(EngineModel):
    id: str
    name: str
    properties: List[Property] = Field(default_factory=list)
    views: List[ViewDefinition] = Field(default_factory=list)
    frozen: bool = False
    frozen_reason: Optional[str] = None
    owner_id: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_property_ids(self) -> "Schema":
        seen = set()
        for p in self.properties:
            if p.id in seen:
                raise ValueError(f"Duplicate property id '{p.id}'")
            seen.add(p.id)
        return self

    def get_property(self, property_id: str) -> Optional[Property]:
        for p in self.properties:
            if p.id == property_id:
                return p
        return None

    def get_view(self, view_id: str) -> Optional[ViewDefinition]:
        for v in self.views:
            if v.id == view_id:
                return v
        return None

    def property_map(self) -> Dict[str, Property]:
        return {p.id: p for p in self.properties}

    def dangling_references(self) -> List[tuple]:
        """
        (view_id, kind, property_id) for every view entry that points at a
        property the schema no longer has. Evaluation tolerates these.
        """
        known = {p.id for p in self.properties}
        out: List[tuple] = []
        for v in self.views:
            for pid in v.visible_properties:
                if pid not in known:
                    out.append((v.id, "visibleProperties", pid))
            for f in v.filters:
                if f.property_id not in known:
                    out.append((v.id, "filters", f.property_id))
            for s in v.sorts:
                if s.property_id not in known:
                    out.append((v.id, "sorts", s.property_id))
            if v.group_by and v.group_by not in known:
                out.append((v.id, "groupBy", v.group_by))
        return out


# ---- Record ----


class Record(EngineModel):
    id: str
    properties: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    last_edited_by: Optional[str] = None


# ---- Typed property values (one shape per type) ----


class TextValue(EngineModel):
    type: Literal["TEXT", "URL", "EMAIL", "PHONE"]
    value: Optional[str] = None


class NumberValue(EngineModel):
    type: Literal["NUMBER"]
    value: Optional[Union[int, float]] = None


class DateValue(EngineModel):
    type: Literal["DATE"]
    value: Optional[datetime] = None


class CheckboxValue(EngineModel):
    type: Literal["CHECKBOX"]
    value: bool = False


class SelectValue(EngineModel):
    type: Literal["SELECT"]
    value: Optional[str] = None


class MultiSelectValue(EngineModel):
    type: Literal["MULTI_SELECT"]
    value: List[str] = Field(default_factory=list)


class RelationValue(EngineModel):
    type: Literal["RELATION"]
    value: List[str] = Field(default_factory=list)


class ComputedValue(EngineModel):
    type: Literal["FORMULA", "ROLLUP"]
    value: Any = None


class SystemValue(EngineModel):
    type: Literal["CREATED_TIME", "CREATED_BY", "LAST_EDITED_TIME", "LAST_EDITED_BY"]
    value: Optional[Union[datetime, str]] = None


PropertyValue = Annotated[
    Union[
        TextValue,
        NumberValue,
        DateValue,
        CheckboxValue,
        SelectValue,
        MultiSelectValue,
        RelationValue,
        ComputedValue,
        SystemValue,
    ],
    Field(discriminator="type"),
]
