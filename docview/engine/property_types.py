# File: /docview/engine/property_types.py | Version: 1.0 | Title: Property type registry (per-type handlers)
"""
Closed set of per-type handlers.

Each handler owns the semantics of one value shape: which filter operators
apply, how raw input is coerced, how two values compare, how a value is
displayed and serialized, and how a cell commits. ``PropertyTypeRegistry``
maps every ``PropertyType`` onto exactly one handler.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import TypeAdapter

from docview.core.errors import TypeConversionError, UnsupportedOperation, ValidationError
from docview.engine.types import (
    COMPUTED_TYPES,
    SELECT_TYPES,
    SYSTEM_TYPES,
    FilterOperator,
    Property,
    PropertyType,
    PropertyValue,
    Record,
)

Op = FilterOperator


class CommitMode(str, Enum):
    IMMEDIATE = "immediate"  # commits on selection
    ON_CONFIRM = "on_confirm"  # commits on blur / Enter
    READ_ONLY = "read_only"


@dataclass(frozen=True)
class Coercion:
    ok: bool
    value: Any = None
    error: Optional[str] = None


def _ok(value: Any) -> Coercion:
    return Coercion(ok=True, value=value)


def _fail(error: str) -> Coercion:
    return Coercion(ok=False, error=error)


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _blank(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() == ""
    if isinstance(raw, (list, tuple, set)):
        return len(raw) == 0
    return False


_INVALID = object()
_NEGATIVE = frozenset({Op.not_equals, Op.not_contains})

TEXT_OPERATORS = (
    Op.contains,
    Op.not_contains,
    Op.equals,
    Op.not_equals,
    Op.starts_with,
    Op.ends_with,
    Op.is_empty,
    Op.is_not_empty,
)
NUMBER_OPERATORS = (
    Op.equals,
    Op.not_equals,
    Op.greater_than,
    Op.less_than,
    Op.greater_than_or_equal,
    Op.less_than_or_equal,
    Op.is_empty,
    Op.is_not_empty,
)
DATE_OPERATORS = (
    Op.equals,
    Op.not_equals,
    Op.before,
    Op.after,
    Op.on_or_before,
    Op.on_or_after,
    Op.is_empty,
    Op.is_not_empty,
)
CHECKBOX_OPERATORS = (Op.checked, Op.unchecked)
SELECT_OPERATORS = (Op.equals, Op.not_equals, Op.is_empty, Op.is_not_empty)
MULTI_SELECT_OPERATORS = (
    Op.contains,
    Op.not_contains,
    Op.contains_all,
    Op.is_empty,
    Op.is_not_empty,
)
RELATION_OPERATORS = (Op.contains, Op.not_contains, Op.is_empty, Op.is_not_empty)
COMPUTED_OPERATORS = (Op.equals, Op.not_equals, Op.is_empty, Op.is_not_empty)


# ----------------------------
# Handlers
# ----------------------------
class TypeHandler:
    operators: Tuple[FilterOperator, ...] = ()
    commit_mode: CommitMode = CommitMode.ON_CONFIRM
    writable: bool = True

    def coerce(self, raw: Any) -> Coercion:
        raise NotImplementedError

    def coerce_operand(self, raw: Any, operator: FilterOperator) -> Coercion:
        return self.coerce(raw)

    def normalize(self, raw: Any) -> Any:
        """Stored value in evaluation form, or _INVALID when it cannot be read."""
        c = self.coerce(raw)
        return c.value if c.ok else _INVALID

    def is_empty(self, value: Any) -> bool:
        return _blank(value)

    def compare(self, a: Any, b: Any, prop: Optional[Property] = None) -> int:
        return _cmp(a, b)

    def display(self, value: Any, prop: Optional[Property] = None) -> str:
        return "" if value is None else str(value)

    def serialize(self, value: Any) -> Any:
        return value

    def test(self, operator: FilterOperator, value: Any, operand: Any, prop: Optional[Property]) -> bool:
        raise NotImplementedError

    def evaluate(
        self,
        operator: FilterOperator,
        raw: Any,
        operand: Any,
        prop: Optional[Property] = None,
    ) -> bool:
        value = self.normalize(raw)
        empty = value is not _INVALID and self.is_empty(value)
        if operator == Op.is_empty:
            return empty
        if operator == Op.is_not_empty:
            return not empty
        if value is _INVALID:
            return operator in _NEGATIVE
        if operator in (Op.checked, Op.unchecked):
            return self.test(operator, value, None, prop)
        op = self.coerce_operand(operand, operator)
        if not op.ok:
            return False
        return self.test(operator, value, op.value, prop)


class TextHandler(TypeHandler):
    operators = TEXT_OPERATORS
    kind = "text"

    def _as_text(self, raw: Any) -> Coercion:
        if raw is None:
            return _ok(None)
        if isinstance(raw, bool):
            return _ok("true" if raw else "false")
        if isinstance(raw, (str, int, float)):
            s = str(raw)
            return _ok(s if s != "" else None)
        return _fail(f"Expected {self.kind}, got {type(raw).__name__}")

    def validate_text(self, text: str) -> Optional[str]:
        return None

    def coerce(self, raw: Any) -> Coercion:
        c = self._as_text(raw)
        if not c.ok or c.value is None:
            return c
        error = self.validate_text(c.value)
        return _fail(error) if error else c

    def coerce_operand(self, raw: Any, operator: FilterOperator) -> Coercion:
        return self._as_text(raw)

    def normalize(self, raw: Any) -> Any:
        # Values that fail format checks (e.g. after a type change) are still text
        c = self._as_text(raw)
        return c.value if c.ok else _INVALID

    def test(self, operator, value, operand, prop):
        value = value or ""
        if operator == Op.equals:
            return value == operand
        if operator == Op.not_equals:
            return value != operand
        low, needle = value.lower(), operand.lower()
        if operator == Op.contains:
            return needle in low
        if operator == Op.not_contains:
            return needle not in low
        if operator == Op.starts_with:
            return low.startswith(needle)
        if operator == Op.ends_with:
            return low.endswith(needle)
        return False


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9 ()./-]{3,}$")


class EmailHandler(TextHandler):
    kind = "email"

    def validate_text(self, text: str) -> Optional[str]:
        return None if _EMAIL_RE.match(text.strip()) else f"'{text}' is not a valid email"


class UrlHandler(TextHandler):
    kind = "url"

    def validate_text(self, text: str) -> Optional[str]:
        parsed = urlparse(text.strip())
        if parsed.scheme == "mailto" or (parsed.scheme and parsed.netloc):
            return None
        return f"'{text}' is not a valid URL"


class PhoneHandler(TextHandler):
    kind = "phone number"

    def validate_text(self, text: str) -> Optional[str]:
        return None if _PHONE_RE.match(text.strip()) else f"'{text}' is not a valid phone number"


class NumberHandler(TypeHandler):
    operators = NUMBER_OPERATORS

    def coerce(self, raw: Any) -> Coercion:
        if raw is None or (isinstance(raw, str) and raw.strip() == ""):
            return _ok(None)
        if isinstance(raw, bool):
            return _fail("Expected a number, got a boolean")
        if isinstance(raw, (int, float)):
            value = raw
        elif isinstance(raw, str):
            s = raw.strip()
            try:
                value = int(s) if re.fullmatch(r"[+-]?\d+", s) else float(s)
            except ValueError:
                return _fail(f"'{raw}' is not a number")
        else:
            return _fail(f"Expected a number, got {type(raw).__name__}")
        if isinstance(value, float) and not math.isfinite(value):
            return _fail("Number must be finite")
        return _ok(value)

    def display(self, value, prop=None):
        if value is None:
            return ""
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)

    def test(self, operator, value, operand, prop):
        if value is None:
            return operator == Op.not_equals
        if operator == Op.equals:
            return value == operand
        if operator == Op.not_equals:
            return value != operand
        if operator == Op.greater_than:
            return value > operand
        if operator == Op.less_than:
            return value < operand
        if operator == Op.greater_than_or_equal:
            return value >= operand
        if operator == Op.less_than_or_equal:
            return value <= operand
        return False


def _parse_datetime(raw: Any) -> Tuple[Optional[datetime], bool]:
    """(utc datetime, date_only). Raises ValueError on bad input."""
    if isinstance(raw, datetime):
        dt, date_only = raw, False
    elif isinstance(raw, date):
        dt, date_only = datetime(raw.year, raw.month, raw.day), True
    elif isinstance(raw, str):
        s = raw.strip()
        date_only = "T" not in s and " " not in s
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
    else:
        raise ValueError(f"Expected a date, got {type(raw).__name__}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc), date_only


class DateHandler(TypeHandler):
    operators = DATE_OPERATORS
    commit_mode = CommitMode.IMMEDIATE

    def coerce(self, raw: Any) -> Coercion:
        if _blank(raw):
            return _ok(None)
        try:
            dt, _ = _parse_datetime(raw)
        except (TypeError, ValueError):
            return _fail(f"'{raw}' is not a valid date")
        return _ok(dt)

    def coerce_operand(self, raw, operator):
        try:
            return _ok(_parse_datetime(raw))
        except (TypeError, ValueError):
            return _fail(f"'{raw}' is not a valid date")

    def display(self, value, prop=None):
        return "" if value is None else value.isoformat()

    def serialize(self, value):
        return value.isoformat() if isinstance(value, datetime) else value

    def test(self, operator, value, operand, prop):
        if value is None:
            return operator == Op.not_equals
        target, date_only = operand
        # A date-only operand compares on the calendar day
        left, right = (value.date(), target.date()) if date_only else (value, target)
        if operator == Op.equals:
            return left == right
        if operator == Op.not_equals:
            return left != right
        if operator == Op.before:
            return left < right
        if operator == Op.after:
            return left > right
        if operator == Op.on_or_before:
            return left <= right
        if operator == Op.on_or_after:
            return left >= right
        return False


_TRUE = {"true", "1", "yes", "y", "on", "checked"}
_FALSE = {"false", "0", "no", "n", "off", "unchecked", ""}


class CheckboxHandler(TypeHandler):
    operators = CHECKBOX_OPERATORS
    commit_mode = CommitMode.IMMEDIATE

    def coerce(self, raw: Any) -> Coercion:
        if raw is None:
            return _ok(False)
        if isinstance(raw, bool):
            return _ok(raw)
        if isinstance(raw, int) and raw in (0, 1):
            return _ok(bool(raw))
        if isinstance(raw, str):
            s = raw.strip().lower()
            if s in _TRUE:
                return _ok(True)
            if s in _FALSE:
                return _ok(False)
        return _fail(f"'{raw}' is not a checkbox value")

    def is_empty(self, value):
        return False

    def display(self, value, prop=None):
        return "Yes" if value else "No"

    def test(self, operator, value, operand, prop):
        if operator == Op.checked:
            return value is True
        if operator == Op.unchecked:
            return value is not True
        return False


def _option_id(raw: Any) -> Any:
    if isinstance(raw, dict):
        return raw.get("id") or raw.get("value") or raw.get("_id")
    return raw


def _option_rank(prop: Optional[Property], option_id: str) -> Tuple[int, str]:
    options = (prop.select_options or []) if prop else []
    for i, o in enumerate(options):
        if o.id == option_id:
            return i, option_id
    return len(options), option_id


class SelectHandler(TypeHandler):
    operators = SELECT_OPERATORS
    commit_mode = CommitMode.IMMEDIATE

    def coerce(self, raw: Any) -> Coercion:
        raw = _option_id(raw)
        if _blank(raw):
            return _ok(None)
        if isinstance(raw, (list, tuple)) and len(raw) == 1:
            raw = _option_id(raw[0])
        if isinstance(raw, str):
            return _ok(raw)
        return _fail("Expected a single option id")

    def coerce_operand(self, raw, operator):
        c = self.coerce(raw)
        return c if c.ok and c.value is not None else _fail("Missing option id")

    def compare(self, a, b, prop=None):
        return _cmp(_option_rank(prop, a), _option_rank(prop, b))

    def display(self, value, prop=None):
        if isinstance(value, (list, tuple)):
            return ", ".join(self.display(_option_id(v), prop) for v in value)
        if value is None:
            return ""
        option = prop.option(value) if prop else None
        return option.name if option else str(value)

    def test(self, operator, value, operand, prop):
        # An operand that is not one of the property's options matches nothing
        known = prop is None or prop.option(operand) is not None
        if operator == Op.equals:
            return known and value == operand
        if operator == Op.not_equals:
            return known and value != operand
        return False


class MultiSelectHandler(TypeHandler):
    operators = MULTI_SELECT_OPERATORS
    commit_mode = CommitMode.IMMEDIATE

    def coerce(self, raw: Any) -> Coercion:
        if _blank(raw):
            return _ok([])
        if isinstance(raw, (str, dict)):
            raw = [raw]
        if not isinstance(raw, (list, tuple)):
            return _fail("Expected a list of option ids")
        ids: List[str] = []
        for item in raw:
            oid = _option_id(item)
            if not isinstance(oid, str) or not oid:
                return _fail("Expected a list of option ids")
            if oid not in ids:
                ids.append(oid)
        return _ok(ids)

    def coerce_operand(self, raw, operator):
        c = self.coerce(raw)
        return c if c.ok and c.value else _fail("Missing option ids")

    def compare(self, a, b, prop=None):
        return _cmp([_option_rank(prop, x) for x in a], [_option_rank(prop, x) for x in b])

    def display(self, value, prop=None):
        names = []
        for oid in value or []:
            option = prop.option(oid) if prop else None
            names.append(option.name if option else str(oid))
        return ", ".join(names)

    def test(self, operator, value, operand, prop):
        wanted = [o for o in operand if prop is None or prop.option(o) is not None]
        have = set(value)
        if operator == Op.contains:
            return any(o in have for o in wanted)
        if operator == Op.not_contains:
            return not any(o in have for o in wanted)
        if operator == Op.contains_all:
            return len(wanted) == len(operand) and all(o in have for o in wanted)
        return False


class RelationHandler(TypeHandler):
    operators = RELATION_OPERATORS

    def coerce(self, raw: Any) -> Coercion:
        if _blank(raw):
            return _ok([])
        if isinstance(raw, (str, dict)):
            raw = [raw]
        if not isinstance(raw, (list, tuple)):
            return _fail("Expected a list of related record ids")
        ids: List[str] = []
        for item in raw:
            rid = item.get("recordId") if isinstance(item, dict) else item
            if not isinstance(rid, str) or not rid:
                return _fail("Expected a list of related record ids")
            if rid not in ids:
                ids.append(rid)
        return _ok(ids)

    def coerce_operand(self, raw, operator):
        c = self.coerce(raw)
        return c if c.ok and c.value else _fail("Missing record ids")

    def compare(self, a, b, prop=None):
        return _cmp((len(a), a), (len(b), b))

    def display(self, value, prop=None):
        return ", ".join(value or [])

    def test(self, operator, value, operand, prop):
        hit = any(o in value for o in operand)
        if operator == Op.contains:
            return hit
        if operator == Op.not_contains:
            return not hit
        return False


class ComputedHandler(TypeHandler):
    operators = COMPUTED_OPERATORS
    commit_mode = CommitMode.READ_ONLY
    writable = False

    def coerce(self, raw: Any) -> Coercion:
        return _ok(None if _blank(raw) else raw)

    def coerce_operand(self, raw, operator):
        return _ok(None if raw is None else str(raw))

    def compare(self, a, b, prop=None):
        if isinstance(a, (int, float)) and isinstance(b, (int, float)):
            return _cmp(a, b)
        return _cmp(str(a), str(b))

    def test(self, operator, value, operand, prop):
        same = value is not None and str(value) == operand
        return same if operator == Op.equals else not same


class SystemTimeHandler(DateHandler):
    commit_mode = CommitMode.READ_ONLY
    writable = False


class SystemUserHandler(TextHandler):
    commit_mode = CommitMode.READ_ONLY
    writable = False


# ----------------------------
# Registry
# ----------------------------
_TEXT_GROUP = frozenset(
    {PropertyType.TEXT, PropertyType.URL, PropertyType.EMAIL, PropertyType.PHONE}
)
_ALLOWED_CONVERSIONS = frozenset(
    {
        (PropertyType.SELECT, PropertyType.MULTI_SELECT),
        (PropertyType.MULTI_SELECT, PropertyType.SELECT),
    }
)

_value_adapter: TypeAdapter = TypeAdapter(PropertyValue)


class PropertyTypeRegistry:
    def __init__(self, handlers: Optional[Dict[PropertyType, TypeHandler]] = None) -> None:
        self._handlers: Dict[PropertyType, TypeHandler] = handlers or {
            PropertyType.TEXT: TextHandler(),
            PropertyType.URL: UrlHandler(),
            PropertyType.EMAIL: EmailHandler(),
            PropertyType.PHONE: PhoneHandler(),
            PropertyType.NUMBER: NumberHandler(),
            PropertyType.DATE: DateHandler(),
            PropertyType.CHECKBOX: CheckboxHandler(),
            PropertyType.SELECT: SelectHandler(),
            PropertyType.MULTI_SELECT: MultiSelectHandler(),
            PropertyType.RELATION: RelationHandler(),
            PropertyType.FORMULA: ComputedHandler(),
            PropertyType.ROLLUP: ComputedHandler(),
            PropertyType.CREATED_TIME: SystemTimeHandler(),
            PropertyType.LAST_EDITED_TIME: SystemTimeHandler(),
            PropertyType.CREATED_BY: SystemUserHandler(),
            PropertyType.LAST_EDITED_BY: SystemUserHandler(),
        }
        missing = set(PropertyType) - set(self._handlers)
        if missing:
            raise ValueError(f"No handler for: {sorted(t.value for t in missing)}")

    def handler(self, ptype: PropertyType | str) -> TypeHandler:
        return self._handlers[PropertyType(ptype)]

    # ---- Read contract ----

    def operators_for(self, ptype: PropertyType | str) -> Tuple[FilterOperator, ...]:
        return self.handler(ptype).operators

    def supports_operator(self, ptype: PropertyType | str, operator: FilterOperator | str) -> bool:
        try:
            return FilterOperator(operator) in self.operators_for(ptype)
        except ValueError:
            return False

    def coerce(self, ptype: PropertyType | str, raw: Any) -> Coercion:
        return self.handler(ptype).coerce(raw)

    def is_blank(self, ptype: PropertyType | str, raw: Any) -> bool:
        h = self.handler(ptype)
        value = h.normalize(raw)
        return value is _INVALID or h.is_empty(value)

    def compare(
        self,
        ptype: PropertyType | str,
        a: Any,
        b: Any,
        prop: Optional[Property] = None,
    ) -> int:
        """-1/0/1. Empty and unreadable values are least."""
        h = self.handler(ptype)
        a_blank, b_blank = self.is_blank(ptype, a), self.is_blank(ptype, b)
        if a_blank or b_blank:
            return _cmp(not a_blank, not b_blank)
        return h.compare(h.normalize(a), h.normalize(b), prop)

    def evaluate(
        self,
        ptype: PropertyType | str,
        operator: FilterOperator,
        raw: Any,
        operand: Any,
        prop: Optional[Property] = None,
    ) -> bool:
        return self.handler(ptype).evaluate(operator, raw, operand, prop)

    def display_value(
        self,
        ptype: PropertyType | str,
        value: Any,
        prop: Optional[Property] = None,
    ) -> str:
        h = self.handler(ptype)
        normalized = h.normalize(value)
        if normalized is _INVALID:
            # Historical values that no longer fit the type still render
            return h.display(value, prop) if isinstance(h, SelectHandler) else str(value)
        return h.display(normalized, prop)

    def serialize(self, ptype: PropertyType | str, value: Any) -> Any:
        return self.handler(ptype).serialize(value)

    def typed_value(self, ptype: PropertyType | str, value: Any):
        ptype = PropertyType(ptype)
        c = self.coerce(ptype, value)
        if not c.ok:
            raise ValidationError(c.error or "Invalid value")
        return _value_adapter.validate_python({"type": ptype.value, "value": c.value})

    def resolve_value(self, prop: Property, record: Record) -> Any:
        """Value of ``prop`` on ``record``; system types read record metadata."""
        if prop.type == PropertyType.CREATED_TIME:
            return record.created_at
        if prop.type == PropertyType.LAST_EDITED_TIME:
            return record.updated_at or record.created_at
        if prop.type == PropertyType.CREATED_BY:
            return record.created_by
        if prop.type == PropertyType.LAST_EDITED_BY:
            return record.last_edited_by or record.created_by
        return record.properties.get(prop.id)

    # ---- Edit contract ----

    def commit_mode(self, ptype: PropertyType | str) -> CommitMode:
        return self.handler(ptype).commit_mode

    def is_writable(self, ptype: PropertyType | str) -> bool:
        return self.handler(ptype).writable

    def check_writable(self, prop: Property) -> None:
        if prop.type in COMPUTED_TYPES:
            raise UnsupportedOperation(
                f"'{prop.name}' is a {prop.type.value} property and cannot be edited directly."
            )
        if prop.type in SYSTEM_TYPES:
            raise UnsupportedOperation(
                f"'{prop.name}' is populated by the system and rejects direct writes."
            )

    def coerce_for_property(self, prop: Property, raw: Any) -> Coercion:
        """Coercion for writes: option ids must exist on the property."""
        c = self.coerce(prop.type, raw)
        if not c.ok or prop.type not in SELECT_TYPES:
            return c
        ids = c.value if isinstance(c.value, list) else [c.value]
        unknown = [i for i in ids if i is not None and prop.option(i) is None]
        if unknown:
            return _fail(f"Unknown option for '{prop.name}': {', '.join(unknown)}")
        return c

    def validate_values(self, props: Iterable[Property], values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Coerce and serialize a record's property map for storage.
        Bad values and unknown ids raise ValidationError with one entry per
        offending property.
        """
        by_id = {p.id: p for p in props}
        out: Dict[str, Any] = {}
        errors: Dict[str, List[str]] = {}
        for pid, raw in values.items():
            prop = by_id.get(pid)
            if prop is None:
                errors.setdefault(pid, []).append("Unknown property")
                continue
            try:
                self.check_writable(prop)
            except UnsupportedOperation as e:
                errors.setdefault(pid, []).append(e.message)
                continue
            c = self.coerce_for_property(prop, raw)
            if not c.ok:
                errors.setdefault(pid, []).append(c.error or "Invalid value")
                continue
            out[pid] = self.serialize(prop.type, c.value)
        if errors:
            raise ValidationError("Invalid record values", errors=errors)
        return out

    # ---- Type changes ----

    def can_convert_type(self, from_type: PropertyType | str, to_type: PropertyType | str) -> bool:
        src, dst = PropertyType(from_type), PropertyType(to_type)
        if src == dst:
            return True
        if src in _TEXT_GROUP and dst in _TEXT_GROUP:
            return True
        return (src, dst) in _ALLOWED_CONVERSIONS

    def check_conversion(self, from_type: PropertyType | str, to_type: PropertyType | str) -> None:
        if not self.can_convert_type(from_type, to_type):
            raise TypeConversionError(from_type, to_type)

    def convert_value(self, from_type: PropertyType | str, to_type: PropertyType | str, value: Any) -> Any:
        src, dst = PropertyType(from_type), PropertyType(to_type)
        self.check_conversion(src, dst)
        if src == dst or value is None:
            return [] if dst == PropertyType.MULTI_SELECT and value is None else value
        if dst in _TEXT_GROUP:
            return value if isinstance(value, str) else str(value)
        if dst == PropertyType.MULTI_SELECT:
            return value if isinstance(value, list) else [value]
        # MULTI_SELECT -> SELECT: arity is not enforced, history stays as-is
        return value

    def convert_property(self, prop: Property, to_type: PropertyType | str) -> Property:
        dst = PropertyType(to_type)
        self.check_conversion(prop.type, dst)
        return prop.model_copy(update={"type": dst})


registry = PropertyTypeRegistry()
