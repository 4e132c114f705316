# File: /docview/engine/sorting.py | Version: 1.0 | Title: Stable multi-key record sort
from __future__ import annotations

import logging
from functools import cmp_to_key
from typing import Iterable, List, Optional, Sequence, Tuple

from docview.engine.filtering import prioritized
from docview.engine.property_types import PropertyTypeRegistry, registry as default_registry
from docview.engine.types import Property, Record, Schema, SortDirection, SortRule

log = logging.getLogger(__name__)


def _active_rules(
    sorts: Sequence[SortRule], schema: Schema
) -> List[Tuple[Property, bool]]:
    out = []
    for rule in prioritized(sorts):
        prop = schema.get_property(rule.property_id)
        if prop is None:
            log.debug("Sort on unknown property %s skipped", rule.property_id)
            continue
        out.append((prop, rule.direction == SortDirection.desc))
    return out


def sort_records(
    records: Iterable[Record],
    sorts: Sequence[SortRule],
    schema: Schema,
    reg: Optional[PropertyTypeRegistry] = None,
) -> List[Record]:
    """
    Order records by the view's sort rules, primary rule first.

    Empty values come first whatever the direction; direction only flips the
    order of defined values. Ties keep input order.
    """
    reg = reg or default_registry
    records = list(records)
    rules = _active_rules(sorts, schema)
    if not rules:
        return records

    def compare(a: Record, b: Record) -> int:
        for prop, descending in rules:
            va, vb = reg.resolve_value(prop, a), reg.resolve_value(prop, b)
            a_blank, b_blank = reg.is_blank(prop.type, va), reg.is_blank(prop.type, vb)
            if a_blank and b_blank:
                continue
            if a_blank:
                return -1
            if b_blank:
                return 1
            c = reg.compare(prop.type, va, vb, prop)
            if c:
                return -c if descending else c
        return 0

    return sorted(records, key=cmp_to_key(compare))
