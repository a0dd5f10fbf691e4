"""Record browsing pipeline: search, structured filters, sort, paginate.

Every stage is a pure function of its inputs. None of them raises on a
malformed record; missing fields are evaluated as null.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from .exceptions import ClientValidationError
from .fields import FieldAccessor
from .filter_validation import validate_filter
from .logger import get_logger, log_event
from .models import (
    BrowserState,
    FilterCondition,
    FilterOperator,
    PageResult,
    PaginationState,
    Record,
    SortDirection,
    SortSpec,
)
from .values import fold, to_datetime, to_display, to_number

logger = get_logger(__name__)

_TEXT_OPERATORS = {
    FilterOperator.CONTAINS,
    FilterOperator.NOT_CONTAINS,
    FilterOperator.STARTS_WITH,
    FilterOperator.ENDS_WITH,
}


def apply_search(records: Sequence[Record], search_text: str, accessor: FieldAccessor) -> list[Record]:
    needle = fold((search_text or "").strip())
    if not needle:
        return list(records)
    return [
        record
        for record in records
        if any(needle in fold(accessor.search_value(record, name)) for name in accessor.searchable_fields)
    ]


def usable_conditions(conditions: Iterable[FilterCondition | Mapping[str, Any]]) -> list[FilterCondition]:
    """Validated conditions; malformed ones are dropped so they exclude nothing."""
    usable: list[FilterCondition] = []
    for index, condition in enumerate(conditions):
        try:
            usable.append(validate_filter(condition, index))
        except ClientValidationError as exc:
            log_event(logger, "filter_skipped", level=logging.WARNING, index=index, reason=str(exc))
    return usable


def apply_filters(
    records: Sequence[Record],
    conditions: Iterable[FilterCondition | Mapping[str, Any]],
    accessor: FieldAccessor,
) -> list[Record]:
    active = usable_conditions(conditions)
    if not active:
        return list(records)
    return [record for record in records if all(matches_condition(record, cond, accessor) for cond in active)]


def matches_condition(record: Record, condition: FilterCondition, accessor: FieldAccessor) -> bool:
    value = accessor.derive(record, condition.field)
    operator = condition.operator
    expected = condition.value

    if operator is FilterOperator.IS_NULL:
        return value is None
    if operator is FilterOperator.IS_NOT_NULL:
        return value is not None
    if operator is FilterOperator.EQUALS:
        return _equals(value, expected)
    if operator is FilterOperator.NOT_EQUALS:
        return not _equals(value, expected)
    if operator in _TEXT_OPERATORS:
        return _text_match(operator, to_display(value), to_display(expected))
    if operator is FilterOperator.GREATER_THAN:
        return _compare(value, expected, lambda left, right: left > right)
    if operator is FilterOperator.LESS_THAN:
        return _compare(value, expected, lambda left, right: left < right)
    if operator is FilterOperator.GREATER_THAN_OR_EQUAL:
        return _compare(value, expected, lambda left, right: left >= right)
    if operator is FilterOperator.LESS_THAN_OR_EQUAL:
        return _compare(value, expected, lambda left, right: left <= right)
    if operator is FilterOperator.BETWEEN:
        if not isinstance(expected, (list, tuple)) or len(expected) != 2 or None in expected:
            return True
        low, high = expected
        return _compare(value, low, lambda left, right: left >= right) and _compare(
            value, high, lambda left, right: left <= right
        )
    if operator in (FilterOperator.IN, FilterOperator.NOT_IN) and not isinstance(expected, (list, tuple)):
        return True
    if operator is FilterOperator.IN:
        return any(_equals(value, item) for item in expected)
    if operator is FilterOperator.NOT_IN:
        return not any(_equals(value, item) for item in expected)
    return True


def _equals(value: Any, expected: Any) -> bool:
    if value is None:
        return expected is None
    if isinstance(value, bool):
        if isinstance(expected, bool):
            return value is expected
        return str(expected).strip().lower() == ("true" if value else "false")
    if isinstance(value, (int, float)):
        number = to_number(expected)
        return number is not None and float(value) == number
    if isinstance(value, datetime):
        other = to_datetime(expected)
        return other is not None and value == other
    if isinstance(value, list):
        return any(_equals(item, expected) for item in value)
    return str(value) == str(expected)


def _text_match(operator: FilterOperator, haystack: str, needle: str) -> bool:
    haystack, needle = fold(haystack), fold(needle)
    if operator is FilterOperator.CONTAINS:
        return needle in haystack
    if operator is FilterOperator.NOT_CONTAINS:
        return needle not in haystack
    if operator is FilterOperator.STARTS_WITH:
        return haystack.startswith(needle)
    return haystack.endswith(needle)


def _ordering_pair(value: Any, expected: Any) -> tuple[Any, Any] | None:
    """Pair the derived value with the filter value for an ordering test.

    ``derive`` has already coerced number and date fields, so a string that
    gets here belongs to a text field and is never read as a number or date.
    """
    if value is None or expected is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        other = to_datetime(expected)
        return (value, other) if other is not None else None
    if isinstance(value, (int, float)):
        number = to_number(expected)
        return (float(value), number) if number is not None else None
    return None


def _compare(value: Any, expected: Any, predicate) -> bool:
    pair = _ordering_pair(value, expected)
    if pair is None:
        return False
    return bool(predicate(*pair))


def sort_records(records: Sequence[Record], sort: SortSpec | None, accessor: FieldAccessor) -> list[Record]:
    """Stable sort on one derived field; missing values always go last.

    ``sorted(reverse=True)`` keeps equal keys in input order, so ties
    read the same in both directions.
    """
    if sort is None:
        return list(records)
    keyed: list[tuple[Any, Record]] = []
    missing: list[Record] = []
    for record in records:
        key = accessor.sort_key(record, sort.field)
        if key is None:
            missing.append(record)
        else:
            keyed.append((key, record))
    ordered = sorted(keyed, key=lambda pair: pair[0], reverse=sort.direction is SortDirection.DESC)
    return [record for _, record in ordered] + missing


def total_pages_for(total_items: int, page_size: int) -> int:
    return max(math.ceil(total_items / max(page_size, 1)), 0)


def effective_page(requested: int, total_items: int, page_size: int) -> int:
    if total_items == 0:
        return 1
    return min(max(requested, 1), total_pages_for(total_items, page_size))


def paginate(records: Sequence[Record], pagination: PaginationState) -> PageResult:
    total = len(records)
    page_size = max(pagination.page_size, 1)
    page = effective_page(pagination.page, total, page_size)
    start = (page - 1) * page_size
    return PageResult(
        records=tuple(records[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_items=total,
        total_pages=total_pages_for(total, page_size),
        requested_page=pagination.page,
    )


def filtered_records(records: Iterable[Any], state: BrowserState, accessor: FieldAccessor) -> list[Record]:
    """Search, filter and sort without paginating; the full current view."""
    usable = [record for record in records if isinstance(record, Mapping)]
    searched = apply_search(usable, state.search_text, accessor)
    filtered = apply_filters(searched, state.filters, accessor)
    ordered = sort_records(filtered, state.sort, accessor)
    log_event(
        logger,
        "pipeline_run",
        level=logging.DEBUG,
        entity_type=accessor.entity_type,
        input=len(usable),
        searched=len(searched),
        filtered=len(filtered),
        sort_field=state.sort.field if state.sort else None,
    )
    return ordered


def run_pipeline(records: Iterable[Any], state: BrowserState, accessor: FieldAccessor) -> PageResult:
    return paginate(filtered_records(records, state, accessor), state.pagination)
