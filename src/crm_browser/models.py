from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

Record = Mapping[str, Any]


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    BETWEEN = "between"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


VALUELESS_OPERATORS = frozenset({FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL})
LIST_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NOT_IN})


class FilterCondition(BaseModel):
    """One structured filter. Conditions in a list are combined with AND.

    ``logical_operator`` is accepted for compatibility with the backend filter
    schema but is not evaluated; OR groups are not supported.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field: str = Field(min_length=1)
    operator: FilterOperator
    value: Any = None
    id: str | None = None
    logical_operator: Literal["AND", "OR"] | None = Field(default=None, alias="logicalOperator")

    @model_validator(mode="before")
    @classmethod
    def _normalize_value(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        try:
            operator = FilterOperator(data.get("operator"))
        except ValueError:
            # Left to field validation, which reports the unknown operator.
            return data
        if operator in VALUELESS_OPERATORS:
            return data
        value = data.get("value")
        if value is None:
            raise ValueError(f"value is required for operator {operator.value}")
        if operator is FilterOperator.BETWEEN:
            if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
                raise ValueError("between requires exactly two values")
            if value[0] is None or value[1] is None:
                raise ValueError("between bounds must not be null")
            return {**data, "value": (value[0], value[1])}
        if operator in LIST_OPERATORS:
            if isinstance(value, str):
                # The filter builder submits "a, b, c" for list operators.
                return {**data, "value": [part.strip() for part in value.split(",") if part.strip()]}
            if isinstance(value, (list, tuple, set, frozenset)):
                return {**data, "value": list(value)}
            raise ValueError(f"{operator.value} requires a list of values")
        return data


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASC


@dataclass
class PaginationState:
    page: int = 1
    page_size: int = 25

    def __post_init__(self) -> None:
        self.page = max(1, int(self.page))
        self.page_size = max(1, int(self.page_size))


@dataclass
class BrowserState:
    search_text: str = ""
    filters: list[FilterCondition] = field(default_factory=list)
    sort: SortSpec | None = None
    pagination: PaginationState = field(default_factory=PaginationState)


@dataclass(frozen=True)
class PageResult:
    records: tuple[Record, ...]
    page: int
    page_size: int
    total_items: int
    total_pages: int
    requested_page: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def was_clamped(self) -> bool:
        return self.page != self.requested_page

    @property
    def start_index(self) -> int:
        if not self.records:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def end_index(self) -> int:
        if not self.records:
            return 0
        return self.start_index + len(self.records) - 1

    def render(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total_items,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_previous": self.has_previous,
            "count": len(self.records),
        }


class RecordPagination(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    page: int | None = None
    limit: int | None = None
    total: int | None = None
    total_pages: int | None = Field(default=None, alias="totalPages")


class RecordSetResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: list[Any] | None = None
    pagination: RecordPagination | None = None
