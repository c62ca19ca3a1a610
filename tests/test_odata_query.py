import unittest
from datetime import date, datetime
from decimal import Decimal

from gridquery.core.errors import (
    ConfigurationError,
    MalformedCountFieldError,
    MalformedResponseError,
    UnknownFilterOperatorError,
    UnknownOperatorError,
)
from gridquery.schemas.query import (
    DataRequest,
    FieldInfo,
    FilterGroup,
    FilterValue,
    ODataVersion,
    SortField,
)
from gridquery.services.odata_query import build_request_url, build_url, map_data


def _filters(*groups):
    return [
        FilterGroup(filters=[FilterValue(field=f, operator=op, value=v) for f, op, v in group])
        for group in groups
    ]


def _filter_clause(version, *groups, fields=None):
    request = DataRequest(page=None, filters=_filters(*groups), fields=fields or [])
    data_url = build_url(version, "/api/items", request).data_url
    prefix = "/api/items?$filter="
    if not data_url.startswith(prefix):
        return None
    return data_url[len(prefix):]


class BuildUrlPagingTests(unittest.TestCase):
    def test_v4_sorted_second_page(self):
        request = DataRequest(page=1, page_size=10, sorting=[SortField(field="name", direction="asc")])
        urls = build_url(ODataVersion.V4, "/api/items", request)
        self.assertEqual(urls.data_url, "/api/items?$orderby=name asc")
        self.assertEqual(urls.page_url, "/api/items?$orderby=name asc&$top=10&$skip=10&$count=true")
        self.assertNotIn("$filter", urls.page_url)

    def test_v3_uses_inlinecount(self):
        request = DataRequest(page=2, page_size=25)
        urls = build_url(ODataVersion.V3, "/odata/Orders", request)
        self.assertEqual(urls.data_url, "/odata/Orders?")
        self.assertEqual(urls.page_url, "/odata/Orders?$top=25&$skip=50&$inlinecount=allpages")

    def test_unpaged_request_only_adds_count_flag(self):
        urls = build_url(ODataVersion.V4, "/api/items", DataRequest(page=0, page_size=None))
        self.assertEqual(urls.page_url, "/api/items?$count=true")
        urls = build_url(ODataVersion.V4, "/api/items", DataRequest(page=None, page_size=5))
        self.assertEqual(urls.page_url, "/api/items?$count=true")

    def test_multiple_sort_fields(self):
        request = DataRequest(
            sorting=[SortField(field="team", direction="asc"), SortField(field="age", direction="desc")]
        )
        urls = build_url(4, "/api/items", request)
        self.assertEqual(urls.data_url, "/api/items?$orderby=team asc, age desc")

    def test_custom_vars_follow_filter_and_sort(self):
        request = DataRequest(
            page=0,
            page_size=5,
            filters=_filters([("id", "eq", 3)]),
            args={"vars": [{"name": "$select", "value": "id,name"}, {"name": "$expand", "value": None}]},
        )
        urls = build_url(ODataVersion.V4, "/api/items", request)
        self.assertEqual(urls.data_url, "/api/items?$filter=id eq 3&$select=id,name")
        self.assertEqual(urls.page_url, urls.data_url + "&$top=5&$skip=0&$count=true")

    def test_build_is_deterministic(self):
        request = DataRequest(
            page=3,
            page_size=7,
            sorting=[SortField(field="name", direction="desc")],
            filters=_filters([("name", "contains", "a"), ("id", "in", [1, 2])], [("active", "eq", True)]),
        )
        first = build_url(ODataVersion.V3, "/api/items", request)
        second = build_url(ODataVersion.V3, "/api/items", request)
        self.assertEqual(first, second)

    def test_unknown_version_is_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            build_url(5, "/api/items", DataRequest())

    def test_request_is_left_unchanged(self):
        request = DataRequest(
            page=2,
            page_size=5,
            sorting=[SortField(field="name", direction="asc")],
            filters=_filters([("id", "in", [1, 2]), ("name", "contains", "x")]),
            args={"vars": [{"name": "$select", "value": "id"}]},
        )
        snapshot = request.model_dump()
        build_url(ODataVersion.V3, "/api/items", request)
        build_request_url(ODataVersion.V4, "/api/items", request)
        self.assertEqual(request.model_dump(), snapshot)


class BuildRequestUrlTests(unittest.TestCase):
    def test_values_are_percent_encoded(self):
        request = DataRequest(page=0, page_size=5, filters=_filters([("dept", "eq", "R&D")]))
        url = build_request_url(ODataVersion.V4, "/odata/Staff", request)
        self.assertEqual(url, "/odata/Staff?$filter=dept%20eq%20%27R%26D%27&$top=5&$skip=0&$count=true")

    def test_build_url_keeps_raw_literals(self):
        request = DataRequest(page=None, filters=_filters([("dept", "eq", "C#")]))
        self.assertEqual(build_url(ODataVersion.V4, "/odata/Staff", request).data_url, "/odata/Staff?$filter=dept eq 'C#'")

    def test_plus_and_percent_are_escaped(self):
        request = DataRequest(page=None, filters=_filters([("code", "eq", "a+b%")]))
        url = build_request_url(ODataVersion.V3, "/odata/Staff", request)
        self.assertEqual(url, "/odata/Staff?$filter=code%20eq%20%27a%2Bb%25%27&$inlinecount=allpages")


class BuildUrlFilterTests(unittest.TestCase):
    def test_single_group_is_not_parenthesized(self):
        clause = _filter_clause(ODataVersion.V4, [("name", "eq", "A"), ("age", "gt", 3)])
        self.assertEqual(clause, "name eq 'A' or age gt 3")

    def test_multiple_groups_are_parenthesized(self):
        clause = _filter_clause(
            ODataVersion.V4,
            [("name", "eq", "A"), ("age", "gte", 3)],
            [("active", "eq", True)],
        )
        self.assertEqual(clause, "(name eq 'A' or age ge 3) and (active eq true)")

    def test_comparison_tokens(self):
        self.assertEqual(_filter_clause(4, [("a", "lt", 1)]), "a lt 1")
        self.assertEqual(_filter_clause(4, [("a", "lte", 1)]), "a le 1")
        self.assertEqual(_filter_clause(4, [("a", "gt", 1)]), "a gt 1")
        self.assertEqual(_filter_clause(4, [("a", None, 1)]), "a eq 1")

    def test_not_equals(self):
        self.assertEqual(_filter_clause(3, [("status", "neq", "closed")]), "not(status eq 'closed')")

    def test_contains_differs_per_dialect(self):
        self.assertEqual(_filter_clause(ODataVersion.V3, [("name", "contains", "li")]), "substringof('li', name)")
        self.assertEqual(_filter_clause(ODataVersion.V4, [("name", "contains", "li")]), "contains(name, 'li')")

    def test_starts_and_ends_with(self):
        for version in (ODataVersion.V3, ODataVersion.V4):
            self.assertEqual(_filter_clause(version, [("name", "startsWith", "Al")]), "startswith(name, 'Al')")
            self.assertEqual(_filter_clause(version, [("name", "endsWith", "ce")]), "endswith(name, 'ce')")

    def test_in_operator(self):
        self.assertEqual(_filter_clause(4, [("id", "in", [1, 2])]), "((id eq 1) or (id eq 2))")
        self.assertEqual(_filter_clause(4, [("id", "in", [1])]), "(id eq 1)")

    def test_in_with_scalar_value_is_single_candidate(self):
        self.assertEqual(_filter_clause(4, [("c", "in", "abc")]), "(c eq 'abc')")
        self.assertEqual(_filter_clause(4, [("c", "in", 7)]), "(c eq 7)")

    def test_empty_in_is_dropped(self):
        self.assertIsNone(_filter_clause(4, [("id", "in", [])]))
        self.assertEqual(_filter_clause(4, [("id", "in", None), ("name", "eq", "x")]), "name eq 'x'")
        self.assertEqual(
            _filter_clause(4, [("id", "in", [])], [("name", "eq", "x")]),
            "name eq 'x'",
        )

    def test_unknown_operator_raises(self):
        with self.assertRaises(UnknownFilterOperatorError) as ctx:
            _filter_clause(4, [("name", "like", "x")])
        self.assertIsInstance(ctx.exception, UnknownOperatorError)
        self.assertEqual(ctx.exception.operator, "like")


class LiteralFormattingTests(unittest.TestCase):
    def test_decimal_fields_get_suffix(self):
        fields = [FieldInfo(field="price", data_type="decimal")]
        self.assertEqual(_filter_clause(4, [("price", "eq", 9.5)], fields=fields), "price eq 9.5m")
        self.assertEqual(_filter_clause(3, [("price", "eq", Decimal("10.25"))], fields=fields), "price eq 10.25m")
        self.assertEqual(_filter_clause(4, [("price", "eq", 9.5)]), "price eq 9.5")

    def test_integral_float_has_no_fraction(self):
        self.assertEqual(_filter_clause(4, [("qty", "eq", 10.0)]), "qty eq 10")

    def test_booleans(self):
        self.assertEqual(_filter_clause(3, [("active", "eq", False)]), "active eq false")

    def test_dates(self):
        value = datetime(2026, 2, 26, 13, 45, 0)
        self.assertEqual(_filter_clause(3, [("created", "gt", value)]), "created gt DateTime'2026-02-26T13:45:00'")
        self.assertEqual(_filter_clause(4, [("created", "gt", value)]), "created gt 2026-02-26T13:45:00z")
        self.assertEqual(_filter_clause(4, [("day", "eq", date(2026, 2, 26))]), "day eq 2026-02-26T00:00:00z")

    def test_strings_are_quoted_and_escaped(self):
        self.assertEqual(_filter_clause(4, [("name", "eq", "O'Brien")]), "name eq 'O''Brien'")
        self.assertEqual(_filter_clause(4, [("code", "eq", "42")]), "code eq '42'")


class MapDataTests(unittest.TestCase):
    def test_round_trip_per_dialect(self):
        items = [{"id": 1}, {"id": 2}]
        page = map_data(ODataVersion.V3, {"value": items, "odata.count": "5"})
        self.assertEqual(page.items, items)
        self.assertEqual(page.total, 5)
        page = map_data(ODataVersion.V4, {"value": items, "@odata.count": 7})
        self.assertEqual(page.total, 7)

    def test_count_key_is_dialect_specific(self):
        with self.assertRaises(MalformedCountFieldError) as ctx:
            map_data(ODataVersion.V4, {"value": [], "odata.count": 3})
        self.assertEqual(ctx.exception.key, "@odata.count")

    def test_unparseable_count_raises(self):
        with self.assertRaises(MalformedCountFieldError):
            map_data(ODataVersion.V3, {"value": [], "odata.count": "many"})
        with self.assertRaises(MalformedCountFieldError):
            map_data(ODataVersion.V4, {"value": [], "@odata.count": -1})

    def test_count_fallback_logs_and_uses_item_count(self):
        with self.assertLogs("gridquery.odata", level="WARNING") as logs:
            page = map_data(ODataVersion.V4, {"value": [{"id": 1}]}, count_fallback=True)
        self.assertEqual(page.total, 1)
        self.assertTrue(any("odata_count_fallback" in line for line in logs.output))

    def test_missing_value_array(self):
        with self.assertRaises(MalformedResponseError):
            map_data(ODataVersion.V4, {"@odata.count": 1})


if __name__ == "__main__":
    unittest.main()
