# File: /tests/test_property_types.py | Version: 1.0 | Title: Property type registry (coercion, display, compare, writes, conversions)
from datetime import datetime, timezone

import pytest

from docview.core.errors import TypeConversionError, UnsupportedOperation, ValidationError
from docview.engine.property_types import CommitMode, registry
from docview.engine.types import FilterOperator as Op, Property, PropertyType as T, SelectOption


@pytest.mark.parametrize(
    "ptype, raw",
    [
        (T.TEXT, "hello world"),
        (T.NUMBER, 42),
        (T.NUMBER, "3.5"),
        (T.NUMBER, 7.0),
        (T.DATE, "2026-02-03"),
        (T.DATE, "2026-02-03T10:15:00Z"),
        (T.CHECKBOX, True),
        (T.CHECKBOX, "no"),
    ],
)
def test_display_value_recoerces_to_equal_value(ptype, raw):
    first = registry.coerce(ptype, raw)
    assert first.ok, first.error
    shown = registry.display_value(ptype, first.value)
    again = registry.coerce(ptype, shown)
    assert again.ok
    assert again.value == first.value


def test_number_rejects_booleans_and_non_finite():
    assert not registry.coerce(T.NUMBER, True).ok
    assert not registry.coerce(T.NUMBER, "nan").ok
    assert not registry.coerce(T.NUMBER, "abc").ok
    assert registry.coerce(T.NUMBER, "").value is None


def test_date_values_are_utc_aware():
    c = registry.coerce(T.DATE, "2026-05-01T12:00:00+02:00")
    assert c.ok
    assert c.value == datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert registry.serialize(T.DATE, c.value) == "2026-05-01T10:00:00+00:00"


def test_checkbox_none_is_false_and_displays_yes_no():
    assert registry.coerce(T.CHECKBOX, None).value is False
    assert registry.display_value(T.CHECKBOX, True) == "Yes"
    assert registry.display_value(T.CHECKBOX, None) == "No"
    assert not registry.coerce(T.CHECKBOX, "maybe").ok


def test_email_url_phone_formats_checked_on_write_only():
    assert registry.coerce(T.EMAIL, "a@b.io").ok
    assert not registry.coerce(T.EMAIL, "not-an-email").ok
    assert registry.coerce(T.URL, "https://example.com/x").ok
    assert not registry.coerce(T.URL, "example").ok
    assert registry.coerce(T.PHONE, "+1 (555) 010-2000").ok
    assert not registry.coerce(T.PHONE, "call me").ok
    # Stored text that no longer fits the format still filters as text
    assert registry.evaluate(T.EMAIL, Op.contains, "legacy value", "legacy")


def test_select_display_uses_option_names(schema):
    status = schema.get_property("status")
    assert registry.display_value(T.SELECT, "b", status) == "Done"
    assert registry.display_value(T.SELECT, "zzz", status) == "zzz"
    labels = schema.get_property("labels")
    assert registry.display_value(T.MULTI_SELECT, ["bug", "feature"], labels) == "Bug, Feature"


def test_compare_puts_blanks_first_and_select_by_option_order(schema):
    status = schema.get_property("status")
    assert registry.compare(T.NUMBER, None, 1) == -1
    assert registry.compare(T.NUMBER, 2, None) == 1
    assert registry.compare(T.NUMBER, 2, 10) == -1
    assert registry.compare(T.SELECT, "b", "a", status) == 1
    assert registry.compare(T.TEXT, "apple", "banana") == -1


def test_operators_per_type():
    assert registry.supports_operator(T.CHECKBOX, Op.checked)
    assert not registry.supports_operator(T.CHECKBOX, Op.contains)
    assert registry.supports_operator(T.MULTI_SELECT, "contains_all")
    assert not registry.supports_operator(T.SELECT, "bogus")


def test_commit_modes():
    assert registry.commit_mode(T.CHECKBOX) == CommitMode.IMMEDIATE
    assert registry.commit_mode(T.SELECT) == CommitMode.IMMEDIATE
    assert registry.commit_mode(T.TEXT) == CommitMode.ON_CONFIRM
    assert registry.commit_mode(T.FORMULA) == CommitMode.READ_ONLY
    assert registry.commit_mode(T.CREATED_TIME) == CommitMode.READ_ONLY


def test_check_writable_rejects_computed_and_system_properties():
    formula = Property(id="f", name="Score", type=T.FORMULA)
    created = Property(id="c", name="Created", type=T.CREATED_TIME)
    with pytest.raises(UnsupportedOperation):
        registry.check_writable(formula)
    with pytest.raises(UnsupportedOperation):
        registry.check_writable(created)


def test_validate_values_collects_errors_per_property(schema):
    with pytest.raises(ValidationError) as ei:
        registry.validate_values(
            schema.properties,
            {"priority": "lots", "status": "nope", "ghost": 1, "title": "ok"},
        )
    errors = ei.value.errors
    assert set(errors) == {"priority", "status", "ghost"}
    assert errors["ghost"] == ["Unknown property"]


def test_validate_values_serializes_for_storage(schema):
    out = registry.validate_values(
        schema.properties,
        {"priority": "3", "due": "2026-01-02", "done": "yes", "labels": "bug"},
    )
    assert out == {
        "priority": 3,
        "due": "2026-01-02T00:00:00+00:00",
        "done": True,
        "labels": ["bug"],
    }


def test_typed_value_is_discriminated_by_type():
    v = registry.typed_value(T.NUMBER, "5")
    assert v.type == "NUMBER"
    assert v.value == 5
    with pytest.raises(ValidationError):
        registry.typed_value(T.NUMBER, "five")


def test_type_conversion_rules(schema):
    status = schema.get_property("status")
    assert registry.can_convert_type(T.TEXT, T.EMAIL)
    assert registry.can_convert_type(T.SELECT, T.MULTI_SELECT)
    assert not registry.can_convert_type(T.SELECT, T.NUMBER)
    with pytest.raises(TypeConversionError):
        registry.convert_property(status, T.NUMBER)
    multi = registry.convert_property(status, T.MULTI_SELECT)
    assert multi.type == T.MULTI_SELECT
    assert multi.select_options == status.select_options
    assert registry.convert_value(T.SELECT, T.MULTI_SELECT, "a") == ["a"]


def test_coerce_for_property_rejects_unknown_options():
    prop = Property(
        id="s",
        name="Stage",
        type=T.SELECT,
        select_options=[SelectOption(id="x", name="X")],
    )
    assert registry.coerce_for_property(prop, "x").ok
    bad = registry.coerce_for_property(prop, "y")
    assert not bad.ok
    assert "Unknown option" in bad.error
