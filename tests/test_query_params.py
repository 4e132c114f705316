# File: /tests/test_query_params.py | Version: 1.0 | Title: Bracketed list-query parameters
from docview.core.query_params import encode_list_params, filter_rules_for, parse_filters, parse_sorts
from docview.engine.types import FilterOperator as Op, SortDirection, SortRule


def test_encode_repeats_list_filters_and_numbers_sorts():
    params = encode_list_params(
        view_id="all",
        page=2,
        limit=25,
        search="tolkien",
        filters={"status": "reading", "genres": ["fiction", "history"], "done": True, "skip": None},
        sorts=[SortRule(property_id="rating", direction=SortDirection.desc), SortRule(property_id="title")],
    )
    assert params == [
        ("viewId", "all"),
        ("page", "2"),
        ("limit", "25"),
        ("search", "tolkien"),
        ("filters[status]", "reading"),
        ("filters[genres]", "fiction"),
        ("filters[genres]", "history"),
        ("filters[done]", "true"),
        ("sorts[0][field]", "rating"),
        ("sorts[0][direction]", "desc"),
        ("sorts[1][field]", "title"),
        ("sorts[1][direction]", "asc"),
    ]


def test_parse_groups_repeated_filters():
    items = [("filters[genres]", "fiction"), ("page", "1"), ("filters[genres]", "history"), ("filters[x", "bad")]
    assert parse_filters(items) == {"genres": ["fiction", "history"]}


def test_parse_sorts_orders_by_index_and_skips_fieldless_slots():
    items = [
        ("sorts[2][field]", "title"),
        ("sorts[0][field]", "rating"),
        ("sorts[0][direction]", "DESC"),
        ("sorts[1][direction]", "asc"),
    ]
    rules = parse_sorts(items)
    assert [(r.property_id, r.direction, r.order) for r in rules] == [
        ("rating", SortDirection.desc, 0),
        ("title", SortDirection.asc, 1),
    ]


def test_filter_rules_pick_operator_by_type(schema):
    rules = filter_rules_for(
        schema,
        {"status": ["a"], "labels": ["bug", "feature"], "done": ["false"], "priority": ["3"], "ghost": ["x"]},
        start_order=2,
    )
    summary = [(r.property_id, r.operator, r.value, r.order) for r in rules]
    assert summary == [
        ("status", Op.equals, "a", 2),
        ("labels", Op.contains, "bug", 3),
        ("labels", Op.contains, "feature", 4),
        ("done", Op.unchecked, None, 5),
        ("priority", Op.equals, 3, 6),
        ("ghost", Op.equals, "x", 7),
    ]
