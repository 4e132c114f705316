# File: /docview/engine/filtering.py | Version: 1.0 | Title: Filter evaluation (AND-only) and search
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from docview.engine.property_types import PropertyTypeRegistry, registry as default_registry
from docview.engine.types import (
    VALUELESS_OPERATORS,
    FilterRule,
    Property,
    Record,
    Schema,
)

log = logging.getLogger(__name__)


def _blank_operand(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def prioritized(rules: Sequence) -> list:
    """Rules by explicit ``order``; position breaks ties and fills gaps."""
    indexed = list(enumerate(rules))
    indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
    return [rule for _, rule in indexed]


def rule_applies(rule: FilterRule, schema: Schema, reg: PropertyTypeRegistry) -> Optional[Property]:
    """The rule's property if the rule takes part in evaluation, else None (fail-open)."""
    prop = schema.get_property(rule.property_id)
    if prop is None:
        log.debug("Filter on unknown property %s ignored", rule.property_id)
        return None
    if not reg.supports_operator(prop.type, rule.operator):
        log.debug("Operator %s not valid for %s; rule ignored", rule.operator.value, prop.type.value)
        return None
    if rule.operator not in VALUELESS_OPERATORS and _blank_operand(rule.value):
        log.debug("Incomplete filter on %s ignored", rule.property_id)
        return None
    return prop


def evaluate_rule(
    record: Record,
    rule: FilterRule,
    schema: Schema,
    reg: Optional[PropertyTypeRegistry] = None,
) -> bool:
    reg = reg or default_registry
    prop = rule_applies(rule, schema, reg)
    if prop is None:
        return True
    raw = reg.resolve_value(prop, record)
    return reg.evaluate(prop.type, rule.operator, raw, rule.value, prop)


def matches(
    record: Record,
    filters: Sequence[FilterRule],
    schema: Schema,
    reg: Optional[PropertyTypeRegistry] = None,
) -> bool:
    reg = reg or default_registry
    return all(evaluate_rule(record, rule, schema, reg) for rule in prioritized(filters))


def filter_records(
    records: Iterable[Record],
    filters: Sequence[FilterRule],
    schema: Schema,
    reg: Optional[PropertyTypeRegistry] = None,
) -> List[Record]:
    reg = reg or default_registry
    rules = prioritized(filters)
    return [r for r in records if all(evaluate_rule(r, f, schema, reg) for f in rules)]


def search_records(
    records: Iterable[Record],
    query: Optional[str],
    properties: Sequence[Property],
    reg: Optional[PropertyTypeRegistry] = None,
) -> List[Record]:
    """Case-insensitive substring match against the display text of ``properties``."""
    records = list(records)
    if not query or not query.strip():
        return records
    reg = reg or default_registry
    needle = query.strip().lower()
    out = []
    for r in records:
        for p in properties:
            text = reg.display_value(p.type, reg.resolve_value(p, r), p)
            if needle in text.lower():
                out.append(r)
                break
    return out
