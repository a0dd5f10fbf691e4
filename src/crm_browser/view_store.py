from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from platformdirs import user_data_dir

from .config import DEFAULT_MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE
from .fields import FieldAccessor
from .logger import get_logger, log_event
from .models import BrowserState, PaginationState, SortDirection, SortSpec
from .pipeline import usable_conditions

STATE_VERSION = 1

logger = get_logger(__name__)


def serialize_state(state: BrowserState) -> dict[str, Any]:
    return {
        "search_text": state.search_text,
        "filters": [condition.model_dump(mode="json", exclude_none=True) for condition in state.filters],
        "sort": {"field": state.sort.field, "direction": state.sort.direction.value} if state.sort else None,
        "page": state.pagination.page,
        "page_size": state.pagination.page_size,
    }


def hydrate_state(
    payload: Mapping[str, Any] | None,
    accessor: FieldAccessor,
    *,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
) -> BrowserState:
    """Rebuild a view state from stored JSON, dropping whatever no longer applies.

    Unknown sort columns and malformed filters are discarded; page size is
    clamped to ``[1, max_page_size]``.
    """
    default = BrowserState(pagination=PaginationState(page=1, page_size=default_page_size))
    if not isinstance(payload, Mapping):
        return default

    search_text = payload.get("search_text")
    raw_filters = payload.get("filters")
    filters = usable_conditions(raw_filters) if isinstance(raw_filters, list) else []

    sort: SortSpec | None = None
    raw_sort = payload.get("sort")
    if isinstance(raw_sort, Mapping) and accessor.is_sortable(str(raw_sort.get("field"))):
        direction = SortDirection.DESC if str(raw_sort.get("direction", "asc")).lower() == "desc" else SortDirection.ASC
        sort = SortSpec(field=str(raw_sort["field"]), direction=direction)
    elif raw_sort:
        log_event(logger, "sort_dropped", entity_type=accessor.entity_type, sort=raw_sort)

    page = _positive_int(payload.get("page"), 1)
    page_size = min(_positive_int(payload.get("page_size"), default_page_size), max_page_size)
    return BrowserState(
        search_text=search_text if isinstance(search_text, str) else "",
        filters=filters,
        sort=sort,
        pagination=PaginationState(page=page, page_size=page_size),
    )


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def default_state_path() -> Path:
    return Path(user_data_dir("crm-browser", "SalesHub")) / "view_state.json"


@dataclass
class ViewStateStore:
    """Per-entity view state kept in one JSON file.

    The store must be opened before use and closed when the owner is done;
    ``close`` flushes pending changes.
    """

    path: Path | None = None
    _views: dict[str, dict[str, Any]] | None = field(default=None, init=False, repr=False)
    _dirty: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.path = Path(self.path) if self.path else default_state_path()

    @property
    def is_open(self) -> bool:
        return self._views is not None

    def open(self) -> "ViewStateStore":
        self._views = self._read()
        self._dirty = False
        return self

    def close(self) -> None:
        if self._views is not None and self._dirty:
            self._write()
        self._views = None
        self._dirty = False

    def __enter__(self) -> "ViewStateStore":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_open(self) -> dict[str, dict[str, Any]]:
        if self._views is None:
            raise RuntimeError("ViewStateStore is not open")
        return self._views

    def save(self, entity_type: str, state: BrowserState, *, flush: bool = True) -> None:
        views = self._require_open()
        views[entity_type] = serialize_state(state)
        self._dirty = True
        if flush:
            self._write()

    def load(
        self,
        accessor: FieldAccessor,
        *,
        default_page_size: int | None = None,
        max_page_size: int | None = None,
    ) -> BrowserState | None:
        views = self._require_open()
        payload = views.get(accessor.entity_type)
        if payload is None:
            return None
        return hydrate_state(
            payload,
            accessor,
            default_page_size=default_page_size or accessor.default_page_size,
            max_page_size=max_page_size or accessor.max_page_size,
        )

    def forget(self, entity_type: str) -> None:
        views = self._require_open()
        if views.pop(entity_type, None) is not None:
            self._write()

    def clear(self) -> None:
        if self._views is not None:
            self._views.clear()
        self._dirty = False
        assert self.path is not None
        if self.path.exists():
            self.path.unlink()

    def _read(self) -> dict[str, dict[str, Any]]:
        assert self.path is not None
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (ValueError, OSError) as exc:
            log_event(logger, "view_state_unreadable", level=logging.WARNING, path=str(self.path), error=str(exc))
            return {}
        if not isinstance(payload, dict) or payload.get("version") != STATE_VERSION:
            return {}
        views = payload.get("views")
        if not isinstance(views, dict):
            return {}
        return {str(key): value for key, value in views.items() if isinstance(value, dict)}

    def _write(self) -> None:
        assert self.path is not None
        views = self._require_open()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"version": STATE_VERSION, "views": views}
        self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        self._dirty = False
