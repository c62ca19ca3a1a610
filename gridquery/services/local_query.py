from __future__ import annotations

from collections.abc import Mapping
from functools import cmp_to_key
from typing import Any, Sequence

from gridquery.core.errors import UnknownOperatorError
from gridquery.schemas.query import (
    DataPage,
    DataRequest,
    FilterOperator,
    FilterValue,
    SortDirection,
    SortField,
    in_candidates,
    operator_or_default,
    resolve_direction,
)


def _field_value(row: Any, field: str):
    if isinstance(row, Mapping):
        return row.get(field)
    return getattr(row, field, None)


def _strict_equals(a, b) -> bool:
    # bool is an int subclass, True must not equal 1.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _ordered(value, expected, compare) -> bool:
    if value is None or expected is None:
        return False
    return compare(value, expected)


def is_row_matching(row: Any, filter_value: FilterValue) -> bool:
    value = _field_value(row, filter_value.field)
    expected = filter_value.value
    operator = operator_or_default(filter_value.operator)
    if operator is FilterOperator.EQUALS:
        return _strict_equals(value, expected)
    if operator is FilterOperator.NOT_EQUALS:
        return not _strict_equals(value, expected)
    if operator is FilterOperator.GREATER_OR_EQUAL:
        return _ordered(value, expected, lambda a, b: a >= b)
    if operator is FilterOperator.GREATER_THAN:
        return _ordered(value, expected, lambda a, b: a > b)
    if operator is FilterOperator.LOWER_THAN:
        return _ordered(value, expected, lambda a, b: a < b)
    if operator is FilterOperator.LOWER_OR_EQUAL:
        return _ordered(value, expected, lambda a, b: a <= b)
    if operator is FilterOperator.IN:
        return any(_strict_equals(candidate, value) for candidate in in_candidates(expected))
    if value is None:
        return False
    if operator is FilterOperator.CONTAINS:
        return str(expected) in str(value)
    if operator is FilterOperator.STARTS_WITH:
        return str(value).startswith(str(expected))
    if operator is FilterOperator.ENDS_WITH:
        return str(value).endswith(str(expected))
    raise UnknownOperatorError(filter_value.operator)


def _is_request_matching(row: Any, request: DataRequest) -> bool:
    return all(
        any(is_row_matching(row, f) for f in group.filters)
        for group in request.filters
    )


def _compare_values(a, b) -> int:
    if a == b:
        return 0
    # None sorts first in ascending order.
    if a is None:
        return -1
    if b is None:
        return 1
    return -1 if a < b else 1


def _row_comparator(sorting: Sequence[SortField]):
    keys = [(entry.field, resolve_direction(entry.direction)) for entry in sorting]

    def _compare(a, b) -> int:
        for field, direction in keys:
            result = _compare_values(_field_value(a, field), _field_value(b, field))
            if result == 0:
                continue
            return -result if direction is SortDirection.DESC else result
        return 0

    return _compare


def run_local_query(rows: Sequence[Any], request: DataRequest) -> DataPage:
    """Filter, sort and page ``rows`` without touching the caller's sequence."""
    for group in request.filters:
        for filter_value in group.filters:
            operator_or_default(filter_value.operator)

    if request.filters:
        copy = [row for row in rows if _is_request_matching(row, request)]
    else:
        copy = list(rows)

    if request.sorting:
        # list.sort is stable, rows equal on every key keep their order.
        copy.sort(key=cmp_to_key(_row_comparator(request.sorting)))

    if request.page_size is None:
        return DataPage(items=copy, total=len(copy))
    page = request.page or 0
    start = page * request.page_size
    return DataPage(items=copy[start:start + request.page_size], total=len(copy))
