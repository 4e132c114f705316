# File: /docview/core/query_params.py | Version: 1.0 | Title: List-query parameter codec
"""
Bracketed query parameters for record listing::

    ?viewId=all&page=2&limit=25&search=tolkien
    &filters[status]=reading&filters[genres]=fiction&filters[genres]=history
    &sorts[0][field]=rating&sorts[0][direction]=desc

Repeated ``filters[...]`` keys become one rule each; all rules AND together.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from docview.engine.property_types import registry
from docview.engine.types import FilterOperator, FilterRule, PropertyType, Schema, SortDirection, SortRule

_FILTER_KEY = re.compile(r"^filters\[([^\]]+)\]$")
_SORT_KEY = re.compile(r"^sorts\[(\d+)\]\[(field|direction)\]$")

_CONTAINS_TYPES = frozenset({PropertyType.MULTI_SELECT, PropertyType.RELATION})


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_list_params(
    *,
    view_id: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    filters: Optional[Mapping[str, Any]] = None,
    sorts: Optional[Sequence[SortRule]] = None,
) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if view_id:
        params.append(("viewId", view_id))
    if page is not None:
        params.append(("page", str(page)))
    if limit is not None:
        params.append(("limit", str(limit)))
    if search:
        params.append(("search", search))
    for key, value in (filters or {}).items():
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v is not None:
                params.append((f"filters[{key}]", _text(v)))
    for i, rule in enumerate(sorts or []):
        params.append((f"sorts[{i}][field]", rule.property_id))
        params.append((f"sorts[{i}][direction]", SortDirection(rule.direction).value))
    return params


def parse_filters(items: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for key, value in items:
        m = _FILTER_KEY.match(key)
        if m:
            out.setdefault(m.group(1), []).append(value)
    return out


def parse_sorts(items: Iterable[Tuple[str, str]]) -> List[SortRule]:
    slots: Dict[int, Dict[str, str]] = {}
    for key, value in items:
        m = _SORT_KEY.match(key)
        if m:
            slots.setdefault(int(m.group(1)), {})[m.group(2)] = value
    rules = []
    for i in sorted(slots):
        field = slots[i].get("field")
        if not field:
            continue
        direction = slots[i].get("direction", "asc").lower()
        rules.append(
            SortRule(
                property_id=field,
                direction=SortDirection.desc if direction == "desc" else SortDirection.asc,
                order=len(rules),
            )
        )
    return rules


def filter_rules_for(schema: Schema, filters: Mapping[str, List[str]], start_order: int = 0) -> List[FilterRule]:
    """Equality rules for ``filters[...]``; MULTI_SELECT and RELATION use ``contains``."""
    rules: List[FilterRule] = []
    for pid, values in filters.items():
        prop = schema.get_property(pid)
        for v in values:
            if prop is not None and prop.type == PropertyType.CHECKBOX:
                c = registry.coerce(prop.type, v)
                op = FilterOperator.checked if c.ok and c.value else FilterOperator.unchecked
                rules.append(FilterRule(property_id=pid, operator=op, order=start_order + len(rules)))
                continue
            op = FilterOperator.contains if prop is not None and prop.type in _CONTAINS_TYPES else FilterOperator.equals
            operand: Any = v
            if prop is not None and prop.type == PropertyType.NUMBER:
                c = registry.coerce(prop.type, v)
                operand = c.value if c.ok else v
            rules.append(FilterRule(property_id=pid, operator=op, value=operand, order=start_order + len(rules)))
    return rules
