from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable
from urllib.parse import quote

from gridquery.core.errors import (
    ConfigurationError,
    MalformedCountFieldError,
    MalformedResponseError,
    UnknownFilterOperatorError,
    UnknownOperatorError,
)
from gridquery.schemas.query import (
    DataPage,
    DataRequest,
    FieldInfo,
    FilterGroup,
    FilterOperator,
    FilterValue,
    ODataVersion,
    SortDirection,
    UrlSet,
    in_candidates,
    operator_or_default,
    resolve_direction,
)

_LOG = logging.getLogger("gridquery.odata")

_COMPARISON_TOKENS = {
    FilterOperator.EQUALS: "eq",
    FilterOperator.GREATER_OR_EQUAL: "ge",
    FilterOperator.GREATER_THAN: "gt",
    FilterOperator.LOWER_THAN: "lt",
    FilterOperator.LOWER_OR_EQUAL: "le",
}

_DATE_PATTERN = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class ODataDialect:
    version: ODataVersion
    count_key: str
    count_param: tuple[str, str]
    format_date: Callable[[datetime], str]
    contains: Callable[[str, str], str]


def _v3_date(value: datetime) -> str:
    return f"DateTime'{value.strftime(_DATE_PATTERN)}'"


def _v4_date(value: datetime) -> str:
    # Trailing "z" is part of the template, no offset is computed.
    return f"{value.strftime(_DATE_PATTERN)}z"


DIALECTS = {
    ODataVersion.V3: ODataDialect(
        version=ODataVersion.V3,
        count_key="odata.count",
        count_param=("$inlinecount", "allpages"),
        format_date=_v3_date,
        contains=lambda field, literal: f"substringof({literal}, {field})",
    ),
    ODataVersion.V4: ODataDialect(
        version=ODataVersion.V4,
        count_key="@odata.count",
        count_param=("$count", "true"),
        format_date=_v4_date,
        contains=lambda field, literal: f"contains({field}, {literal})",
    ),
}


def get_dialect(version: ODataVersion | int) -> ODataDialect:
    try:
        return DIALECTS[ODataVersion(version)]
    except ValueError:
        raise ConfigurationError(f"Unsupported OData version: {version!r}")


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_literal(dialect: ODataDialect, field_info: FieldInfo | None, value: Any) -> str:
    if isinstance(value, datetime):
        return dialect.format_date(value)
    if isinstance(value, date):
        return dialect.format_date(datetime.combine(value, time.min))
    if isinstance(value, bool):
        return "true" if value else "false"
    if not isinstance(value, (int, float, Decimal)):
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"
    if field_info is not None and field_info.data_type == "decimal":
        return _format_number(value) + "m"
    return _format_number(value)


def compile_filter(dialect: ODataDialect, request: DataRequest, filter_value: FilterValue) -> str | None:
    try:
        operator = operator_or_default(filter_value.operator)
    except UnknownOperatorError as exc:
        raise UnknownFilterOperatorError(exc.operator) from exc
    field = filter_value.field
    field_info = request.field_info(field)

    def literal(value):
        return format_literal(dialect, field_info, value)

    if operator is FilterOperator.NOT_EQUALS:
        return f"not({field} eq {literal(filter_value.value)})"
    if operator is FilterOperator.CONTAINS:
        return dialect.contains(field, literal(filter_value.value))
    if operator is FilterOperator.STARTS_WITH:
        return f"startswith({field}, {literal(filter_value.value)})"
    if operator is FilterOperator.ENDS_WITH:
        return f"endswith({field}, {literal(filter_value.value)})"
    if operator is FilterOperator.IN:
        candidates = in_candidates(filter_value.value)
        if not candidates:
            return None
        clauses = " or ".join(f"({field} eq {literal(i)})" for i in candidates)
        return f"({clauses})" if len(candidates) > 1 else clauses
    token = _COMPARISON_TOKENS.get(operator)
    if token is None:
        raise UnknownFilterOperatorError(filter_value.operator)
    return f"{field} {token} {literal(filter_value.value)}"


def _compile_group(dialect: ODataDialect, request: DataRequest, group: FilterGroup) -> str | None:
    fragments = [compile_filter(dialect, request, f) for f in group.filters]
    fragments = [i for i in fragments if i]
    if not fragments:
        return None
    return " or ".join(fragments)


def compile_filters(dialect: ODataDialect, request: DataRequest) -> str | None:
    groups = [_compile_group(dialect, request, g) for g in request.filters]
    groups = [i for i in groups if i]
    if not groups:
        return None
    if len(groups) == 1:
        return groups[0]
    return " and ".join(f"({i})" for i in groups)


def compile_sort(request: DataRequest) -> str | None:
    if not request.sorting:
        return None
    parts = []
    for entry in request.sorting:
        direction = resolve_direction(entry.direction)
        parts.append(f"{entry.field} {'desc' if direction is SortDirection.DESC else 'asc'}")
    return ", ".join(parts)


def _custom_vars(request: DataRequest) -> list[tuple[str, Any]]:
    if not request.args:
        return []
    raw = request.args.get("vars")
    if not isinstance(raw, list):
        return []
    result = []
    for item in raw:
        if isinstance(item, dict) and item.get("name"):
            result.append((str(item["name"]), item.get("value")))
    return result


def _query_pairs(dialect: ODataDialect, request: DataRequest) -> list[tuple[str, Any]]:
    pairs = [
        ("$filter", compile_filters(dialect, request)),
        ("$orderby", compile_sort(request)),
        *_custom_vars(request),
    ]
    return [(name, value) for name, value in pairs if value is not None]


def _page_pairs(dialect: ODataDialect, request: DataRequest) -> list[tuple[str, Any]]:
    pairs = []
    if request.page_size is not None and request.page is not None:
        pairs.append(("$top", request.page_size))
        pairs.append(("$skip", request.page * request.page_size))
    pairs.append(dialect.count_param)
    return pairs


def _join_vars(pairs: list[tuple[str, Any]]) -> str:
    return "&".join(f"{name}={value}" for name, value in pairs)


def build_url(version: ODataVersion | int, url: str, request: DataRequest) -> UrlSet:
    """Compile ``request`` into the data url and the paged url for an OData endpoint.

    The data url carries ``$filter``, ``$orderby`` and caller supplied ``args.vars``;
    the page url adds ``$top``/``$skip`` and the dialect's count flag. Values are
    left unencoded, use ``build_request_url`` for a url that goes on the wire.
    """
    dialect = get_dialect(version)
    query_vars = _join_vars(_query_pairs(dialect, request))
    data_url = f"{url}?{query_vars}"
    join_symbol = "&" if query_vars else ""
    page_vars = _join_vars(_page_pairs(dialect, request))
    return UrlSet(data_url=data_url, page_url=f"{data_url}{join_symbol}{page_vars}")


def build_request_url(version: ODataVersion | int, url: str, request: DataRequest) -> str:
    """Paged url with every value percent-encoded, ready for an HTTP GET."""
    dialect = get_dialect(version)
    pairs = _query_pairs(dialect, request) + _page_pairs(dialect, request)
    encoded = "&".join(f"{quote(name, safe='$')}={quote(str(value), safe='')}" for name, value in pairs)
    return f"{url}?{encoded}"


def _parse_count(raw) -> int:
    if isinstance(raw, bool):
        raise ValueError("boolean count")
    if isinstance(raw, int):
        count = raw
    elif isinstance(raw, float) and raw.is_integer():
        count = int(raw)
    elif isinstance(raw, str):
        count = int(raw.strip(), 10)
    else:
        raise ValueError(f"unsupported count type {type(raw).__name__}")
    if count < 0:
        raise ValueError("negative count")
    return count


def map_data(version: ODataVersion | int, result: Any, *, count_fallback: bool = False) -> DataPage:
    dialect = get_dialect(version)
    if not isinstance(result, dict) or not isinstance(result.get("value"), list):
        raise MalformedResponseError('OData response has no "value" array')
    items = result["value"]
    raw_count = result.get(dialect.count_key)
    try:
        total = _parse_count(raw_count)
    except (TypeError, ValueError):
        if not count_fallback:
            raise MalformedCountFieldError(dialect.count_key, raw_count)
        _LOG.warning(
            "odata_count_fallback key=%s value=%r items=%s",
            dialect.count_key,
            raw_count,
            len(items),
        )
        total = len(items)
    return DataPage(items=items, total=total)
