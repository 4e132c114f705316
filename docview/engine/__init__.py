# File: /docview/engine/__init__.py | Version: 1.0 | Title: Engine package exports
"""Document view engine: typed properties, view evaluation, frozen governance, cell editing."""
from docview.engine.edit_session import CommitResult, CommitStatus, EditState, RecordEditSession
from docview.engine.events import InvalidationBus
from docview.engine.filtering import filter_records, matches, search_records
from docview.engine.frozen import FrozenConfig, FrozenPropertyGuard, apply_frozen_config
from docview.engine.projection import ViewProjection, check_view_references, default_view, group_records
from docview.engine.property_types import Coercion, CommitMode, PropertyTypeRegistry, registry
from docview.engine.sorting import sort_records
from docview.engine.types import (
    FilterOperator,
    FilterRule,
    GuardedOperation,
    InsertPosition,
    Property,
    PropertyType,
    PropertyValue,
    Record,
    Schema,
    SelectOption,
    SortDirection,
    SortRule,
    ViewDefinition,
    ViewType,
)
from docview.engine.visibility import (
    hide_all,
    hide_globally,
    show_all,
    toggle_view_property,
    unhide_globally,
    visibility_stats,
    visible_properties,
)

__all__ = [
    "Coercion",
    "CommitMode",
    "CommitResult",
    "CommitStatus",
    "EditState",
    "FilterOperator",
    "FilterRule",
    "FrozenConfig",
    "FrozenPropertyGuard",
    "GuardedOperation",
    "InsertPosition",
    "InvalidationBus",
    "Property",
    "PropertyType",
    "PropertyTypeRegistry",
    "PropertyValue",
    "Record",
    "RecordEditSession",
    "Schema",
    "SelectOption",
    "SortDirection",
    "SortRule",
    "ViewDefinition",
    "ViewProjection",
    "ViewType",
    "apply_frozen_config",
    "check_view_references",
    "default_view",
    "filter_records",
    "group_records",
    "hide_all",
    "hide_globally",
    "matches",
    "registry",
    "search_records",
    "show_all",
    "sort_records",
    "toggle_view_property",
    "unhide_globally",
    "visibility_stats",
    "visible_properties",
]
