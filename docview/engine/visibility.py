# File: /docview/engine/visibility.py | Version: 1.0 | Title: Visible-property resolution and column toggles
"""
Effective column set for a view.

A property shows when it is not hidden on the schema and the view either
lists it or lists nothing. Frozen properties always show.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from docview.core.errors import NotFoundError
from docview.engine.frozen import FrozenPropertyGuard, guard as default_guard
from docview.engine.types import GuardedOperation, Property, Schema, ViewDefinition


def _ordered(schema: Schema, props: List[Property]) -> List[Property]:
    position = {p.id: i for i, p in enumerate(schema.properties)}
    return sorted(props, key=lambda p: (p.order, position[p.id]))


def _require(schema: Schema, property_id: str) -> Property:
    prop = schema.get_property(property_id)
    if prop is None:
        raise NotFoundError("property", property_id)
    return prop


def visible_properties(schema: Schema, view: Optional[ViewDefinition] = None) -> List[Property]:
    listed = set(view.visible_properties) if view is not None else set()
    out = [
        p
        for p in schema.properties
        if p.frozen or (p.visible and (not listed or p.id in listed))
    ]
    return _ordered(schema, out)


def is_visible(schema: Schema, view: Optional[ViewDefinition], property_id: str) -> bool:
    return any(p.id == property_id for p in visible_properties(schema, view))


def toggle_view_property(
    schema: Schema,
    view: ViewDefinition,
    property_id: str,
    visible: bool,
    guard: FrozenPropertyGuard = default_guard,
) -> ViewDefinition:
    """Per-view show/hide. The schema is never touched."""
    prop = _require(schema, property_id)
    current = list(view.visible_properties)

    if visible:
        if current and property_id not in current:
            current.append(property_id)
        return view.model_copy(update={"visible_properties": current})

    # Only the property's own flag applies; a frozen database still allows view changes
    guard.authorize(GuardedOperation.hide, prop)
    if not current:
        # "use defaults" becomes an explicit list so one column can drop out
        current = [p.id for p in visible_properties(schema, view)]
    current = [pid for pid in current if pid != property_id]
    return view.model_copy(update={"visible_properties": current})


def hide_globally(
    schema: Schema,
    property_id: str,
    guard: FrozenPropertyGuard = default_guard,
) -> Schema:
    prop = _require(schema, property_id)
    guard.authorize(GuardedOperation.hide, prop, schema)
    return _set_flag(schema, property_id, False)


def unhide_globally(schema: Schema, property_id: str) -> Schema:
    _require(schema, property_id)
    return _set_flag(schema, property_id, True)


def _set_flag(schema: Schema, property_id: str, visible: bool) -> Schema:
    props = [
        p.model_copy(update={"visible": visible}) if p.id == property_id else p
        for p in schema.properties
    ]
    return schema.model_copy(update={"properties": props})


def show_all(schema: Schema, view: ViewDefinition) -> ViewDefinition:
    return view.model_copy(update={"visible_properties": [p.id for p in schema.properties]})


def hide_all(schema: Schema, view: ViewDefinition) -> ViewDefinition:
    """Hide every column except frozen and required ones (or the first column if none)."""
    keep = [p.id for p in schema.properties if p.frozen or p.required]
    if not keep and schema.properties:
        # An empty list means "defaults", so one column has to stay
        keep = [_ordered(schema, list(schema.properties))[0].id]
    return view.model_copy(update={"visible_properties": keep})


def reset_to_default(view: ViewDefinition) -> ViewDefinition:
    return view.model_copy(update={"visible_properties": []})


def visibility_stats(schema: Schema, view: Optional[ViewDefinition] = None) -> Dict[str, int]:
    visible = visible_properties(schema, view)
    total = len(schema.properties)
    return {
        "total": total,
        "visible": len(visible),
        "hidden": total - len(visible),
        "frozen": sum(1 for p in schema.properties if p.frozen),
        "globallyHidden": sum(1 for p in schema.properties if not p.visible),
    }
