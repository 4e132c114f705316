# File: /docview/core/modules.py | Version: 1.0 | Title: Module configuration registry
"""
Per-module configuration served at ``GET /{module}/config``.

Module-specific behavior is data: capabilities, the properties and views a
fresh schema starts with, and which properties are frozen.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from docview.core.config import settings
from docview.core.errors import NotFoundError
from docview.engine.frozen import FrozenConfig, FrozenPropertyConfig
from docview.engine.types import (
    EngineModel,
    FilterOperator,
    FilterRule,
    Property,
    PropertyType,
    Schema,
    SelectOption,
    SortDirection,
    SortRule,
    ViewDefinition,
    ViewType,
)

T = PropertyType


class Capabilities(EngineModel):
    supports_search: bool = True
    supports_filters: bool = True
    supports_sorts: bool = True
    supports_pagination: bool = True
    supports_bulk: bool = True
    supports_view_duplication: bool = True


class ModuleConfig(EngineModel):
    module: str
    display_name: str
    capabilities: Capabilities = Field(default_factory=Capabilities)
    default_properties: List[Property] = Field(default_factory=list)
    default_views: List[ViewDefinition] = Field(default_factory=list)
    frozen_config: FrozenConfig = Field(default_factory=FrozenConfig)
    supported_property_types: List[PropertyType] = Field(default_factory=lambda: list(PropertyType))
    supported_view_types: List[ViewType] = Field(default_factory=lambda: list(ViewType))
    permissions: List[str] = Field(default_factory=lambda: ["read", "write"])
    # Filled in per request with the stored schema header
    database: Optional[Schema] = None


def _opts(*pairs) -> List[SelectOption]:
    return [SelectOption(id=i, name=n, color=c) for i, n, c in pairs]


BOOKS = ModuleConfig(
    module="books",
    display_name="Books",
    default_properties=[
        Property(id="title", name="Title", type=T.TEXT, required=True, order=0),
        Property(id="author", name="Author", type=T.TEXT, order=1),
        Property(
            id="status",
            name="Status",
            type=T.SELECT,
            order=2,
            select_options=_opts(
                ("to_read", "To Read", "gray"),
                ("reading", "Reading", "blue"),
                ("finished", "Finished", "green"),
            ),
        ),
        Property(id="rating", name="Rating", type=T.NUMBER, order=3),
        Property(
            id="genres",
            name="Genres",
            type=T.MULTI_SELECT,
            order=4,
            select_options=_opts(
                ("fiction", "Fiction", "purple"),
                ("non_fiction", "Non-fiction", "orange"),
                ("science", "Science", "teal"),
                ("history", "History", "brown"),
            ),
        ),
        Property(id="started", name="Started", type=T.DATE, order=5),
        Property(id="link", name="Link", type=T.URL, order=6),
        Property(id="created", name="Added", type=T.CREATED_TIME, order=7),
    ],
    default_views=[
        ViewDefinition(id="all", name="All Books", type=ViewType.TABLE, is_default=True),
        ViewDefinition(
            id="shelf",
            name="Shelf",
            type=ViewType.BOARD,
            group_by="status",
            visible_properties=["title", "author", "rating"],
        ),
        ViewDefinition(
            id="favorites",
            name="Favorites",
            type=ViewType.GALLERY,
            filters=[FilterRule(property_id="rating", operator=FilterOperator.greater_than_or_equal, value=4)],
            sorts=[SortRule(property_id="rating", direction=SortDirection.desc)],
        ),
    ],
    frozen_config=FrozenConfig(
        module_type="books",
        frozen_properties=[
            FrozenPropertyConfig(
                property_id="title",
                allow_hide=False,
                allow_delete=False,
                reason="Every book needs a title",
            ),
        ],
    ),
)

CALENDAR = ModuleConfig(
    module="calendar",
    display_name="Calendar",
    capabilities=Capabilities(supports_search=False, supports_bulk=False, supports_view_duplication=False),
    default_properties=[
        Property(id="title", name="Title", type=T.TEXT, required=True, order=0),
        Property(id="start", name="Start", type=T.DATE, required=True, order=1),
        Property(id="end", name="End", type=T.DATE, order=2),
        Property(id="all_day", name="All day", type=T.CHECKBOX, order=3),
        Property(id="location", name="Location", type=T.TEXT, order=4),
        Property(
            id="category",
            name="Category",
            type=T.SELECT,
            order=5,
            select_options=_opts(
                ("work", "Work", "blue"),
                ("personal", "Personal", "green"),
            ),
        ),
    ],
    default_views=[
        ViewDefinition(id="month", name="Month", type=ViewType.CALENDAR, is_default=True),
        ViewDefinition(
            id="agenda",
            name="Agenda",
            type=ViewType.LIST,
            sorts=[SortRule(property_id="start", direction=SortDirection.asc)],
        ),
    ],
    frozen_config=FrozenConfig(
        module_type="calendar",
        frozen_properties=[
            FrozenPropertyConfig(property_id="title", allow_delete=False, allow_hide=False),
            FrozenPropertyConfig(
                property_id="start",
                allow_delete=False,
                reason="Events are placed on the calendar by their start date",
            ),
        ],
    ),
    supported_view_types=[ViewType.CALENDAR, ViewType.LIST, ViewType.TABLE, ViewType.TIMELINE],
)

DATABASES = ModuleConfig(
    module="databases",
    display_name="Databases",
    default_properties=[
        Property(id="name", name="Name", type=T.TEXT, required=True, order=0),
        Property(id="notes", name="Notes", type=T.TEXT, order=1),
        Property(
            id="tags",
            name="Tags",
            type=T.MULTI_SELECT,
            order=2,
            select_options=_opts(("important", "Important", "red"), ("later", "Later", "gray")),
        ),
        Property(id="created", name="Created", type=T.CREATED_TIME, order=3),
        Property(id="edited", name="Last edited", type=T.LAST_EDITED_TIME, order=4),
    ],
    default_views=[ViewDefinition(id="table", name="Table", type=ViewType.TABLE, is_default=True)],
)

TASKS = ModuleConfig(
    module="tasks",
    display_name="Tasks",
    default_properties=[
        Property(id="title", name="Title", type=T.TEXT, required=True, order=0),
        Property(
            id="status",
            name="Status",
            type=T.SELECT,
            order=1,
            select_options=_opts(
                ("todo", "Todo", "gray"),
                ("in_progress", "In Progress", "blue"),
                ("done", "Done", "green"),
            ),
        ),
        Property(id="priority", name="Priority", type=T.NUMBER, order=2),
        Property(id="due", name="Due", type=T.DATE, order=3),
        Property(id="done", name="Done", type=T.CHECKBOX, order=4),
        Property(id="assignee", name="Assignee", type=T.EMAIL, order=5),
        Property(
            id="labels",
            name="Labels",
            type=T.MULTI_SELECT,
            order=6,
            select_options=_opts(("bug", "Bug", "red"), ("feature", "Feature", "blue"), ("chore", "Chore", "gray")),
        ),
    ],
    default_views=[
        ViewDefinition(id="all", name="All tasks", type=ViewType.TABLE, is_default=True),
        ViewDefinition(id="board", name="Board", type=ViewType.BOARD, group_by="status"),
        ViewDefinition(
            id="open",
            name="Open",
            type=ViewType.LIST,
            filters=[FilterRule(property_id="done", operator=FilterOperator.unchecked)],
            sorts=[
                SortRule(property_id="due", direction=SortDirection.asc),
                SortRule(property_id="priority", direction=SortDirection.desc),
            ],
        ),
    ],
    frozen_config=FrozenConfig(
        module_type="tasks",
        frozen_properties=[
            FrozenPropertyConfig(property_id="title", allow_delete=False, allow_hide=False),
            FrozenPropertyConfig(property_id="status", allow_delete=False, reason="Status drives the board view"),
        ],
    ),
)

MODULES: Dict[str, ModuleConfig] = {m.module: m for m in (BOOKS, CALENDAR, DATABASES, TASKS)}


def enabled_modules() -> Dict[str, ModuleConfig]:
    names = settings.ENABLED_MODULES
    if names is None:
        return dict(MODULES)
    return {n: MODULES[n] for n in names if n in MODULES}


def get_module_config(module: str) -> ModuleConfig:
    config = enabled_modules().get(module)
    if config is None:
        raise NotFoundError("module", module)
    return config
