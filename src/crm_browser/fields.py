from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Literal, Mapping

from .logger import get_logger, log_event
from .models import Record
from .values import MISSING_DISPLAY, fold, is_missing, to_datetime, to_display, to_number

FieldKind = Literal["text", "number", "date", "boolean"]
Deriver = Callable[[Record], Any]
SortKey = tuple[int, Any]

logger = get_logger(__name__)

_RANK_NUMBER = 0
_RANK_DATE = 1
_RANK_TEXT = 2


def lookup(record: Record, path: str) -> Any:
    """Read ``path`` from a record, following dots into nested objects."""
    if path in record:
        return record[path]
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


@dataclass(frozen=True)
class FieldAccessor:
    """Per-entity strategy mapping field names to derived display values.

    Search, filter and sort all go through :meth:`derive`, so a derived field
    such as ``owner`` behaves the same in every stage.
    """

    entity_type: str
    searchable_fields: tuple[str, ...]
    sortable_fields: tuple[str, ...]
    derivers: Mapping[str, Deriver] = field(default_factory=dict)
    field_kinds: Mapping[str, FieldKind] = field(default_factory=dict)
    labels: Mapping[str, str] = field(default_factory=dict)
    columns: tuple[str, ...] = ()
    default_page_size: int = 25
    max_page_size: int = 200

    def field_kind(self, field_name: str) -> FieldKind:
        return self.field_kinds.get(field_name, "text")

    def label(self, field_name: str) -> str:
        return self.labels.get(field_name) or field_name

    def is_sortable(self, field_name: str) -> bool:
        return field_name in self.sortable_fields

    def display_columns(self) -> tuple[str, ...]:
        return self.columns or self.searchable_fields

    def raw(self, record: Record, field_name: str) -> Any:
        deriver = self.derivers.get(field_name)
        if deriver is None:
            return lookup(record, field_name)
        try:
            return deriver(record)
        except Exception as exc:
            # Malformed records derive nothing instead of breaking the listing.
            log_event(
                logger,
                "derive_failed",
                level=logging.DEBUG,
                entity_type=self.entity_type,
                field=field_name,
                record_id=record.get("id") if isinstance(record, Mapping) else None,
                error=type(exc).__name__,
            )
            return None

    def derive(self, record: Record, field_name: str) -> str | float | int | bool | datetime | list | None:
        value = self.raw(record, field_name)
        if isinstance(value, Mapping):
            value = value.get("name") or value.get("label")
        if is_missing(value):
            return None
        if isinstance(value, (list, tuple)):
            return list(value) or None
        kind = self.field_kind(field_name)
        if kind == "number":
            return to_number(value)
        if kind == "date":
            return to_datetime(value)
        if kind == "boolean":
            return value if isinstance(value, bool) else None
        if isinstance(value, str):
            return value.strip()
        return value

    def search_value(self, record: Record, field_name: str) -> str:
        return to_display(self.derive(record, field_name))

    def display(self, record: Record, field_name: str) -> str:
        value = self.derive(record, field_name)
        if isinstance(value, datetime):
            return value.strftime("%Y-%m-%d")
        return to_display(value)

    def sort_key(self, record: Record, field_name: str) -> SortKey | None:
        """Comparable key for ``field_name`` or ``None`` when the value is missing.

        The leading rank keeps numbers, dates and strings apart so mixed
        columns never compare across types. Text fields sort as text even
        when their values look like numbers or dates.
        """
        return comparable(self.derive(record, field_name), self.field_kind(field_name))


def comparable(value: Any, kind: FieldKind = "text") -> SortKey | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return (_RANK_NUMBER, int(value))
    if isinstance(value, (int, float)):
        return (_RANK_NUMBER, float(value))
    if isinstance(value, datetime):
        return (_RANK_DATE, value.timestamp())
    text = to_display(value)
    if text == MISSING_DISPLAY:
        return None
    if kind == "number":
        number = to_number(text)
        if number is not None:
            return (_RANK_NUMBER, number)
    elif kind == "date":
        parsed = to_datetime(text)
        if parsed is not None:
            return (_RANK_DATE, parsed.timestamp())
    return (_RANK_TEXT, fold(text))


class AccessorRegistry:
    def __init__(self, accessors: Iterable[FieldAccessor] = ()) -> None:
        self._accessors: dict[str, FieldAccessor] = {}
        for accessor in accessors:
            self.register(accessor)

    def register(self, accessor: FieldAccessor) -> None:
        self._accessors[accessor.entity_type] = accessor

    def get(self, entity_type: str) -> FieldAccessor:
        try:
            return self._accessors[entity_type.strip().lower()]
        except KeyError:
            known = ", ".join(sorted(self._accessors)) or "none"
            raise KeyError(f"Unknown entity type {entity_type!r} (known: {known})") from None

    def entity_types(self) -> list[str]:
        return sorted(self._accessors)

    def __contains__(self, entity_type: object) -> bool:
        return isinstance(entity_type, str) and entity_type.strip().lower() in self._accessors
