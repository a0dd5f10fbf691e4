from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .data_source import DataSource
from .fields import FieldAccessor
from .filter_validation import validate_filter
from .logger import get_logger, log_event
from .models import BrowserState, FilterCondition, PageResult, PaginationState, Record, SortDirection, SortSpec
from .pipeline import filtered_records, paginate, usable_conditions
from .view_store import hydrate_state, serialize_state

logger = get_logger(__name__)


class RecordBrowser:
    """Owns one entity snapshot plus its view state and derives the visible page.

    The pipeline is re-run from scratch on every :meth:`view`; the only mutable
    state is :attr:`state` and the selection set.
    """

    def __init__(
        self,
        accessor: FieldAccessor,
        records: Iterable[Any] = (),
        *,
        page_size: int | None = None,
        max_page_size: int | None = None,
    ) -> None:
        self.accessor = accessor
        self.max_page_size = max(1, max_page_size or accessor.max_page_size)
        self.default_page_size = self._clamp_page_size(page_size or accessor.default_page_size)
        self.state = self._initial_state()
        self._records: tuple[Record, ...] = ()
        self._selected: dict[str, None] = {}
        self.load(records)

    @property
    def entity_type(self) -> str:
        return self.accessor.entity_type

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    def _initial_state(self) -> BrowserState:
        return BrowserState(pagination=PaginationState(page=1, page_size=self.default_page_size))

    def _clamp_page_size(self, size: int) -> int:
        return min(max(1, int(size)), self.max_page_size)

    def _changed(self, action: str, **fields: Any) -> None:
        log_event(logger, "state_changed", level=logging.DEBUG, entity_type=self.entity_type, action=action, **fields)

    # -- snapshot -----------------------------------------------------------------

    def load(self, records: Iterable[Any]) -> None:
        accepted: list[Record] = []
        rejected = 0
        for record in records:
            if isinstance(record, Mapping):
                accepted.append(record)
            else:
                rejected += 1
        if rejected:
            log_event(logger, "records_rejected", level=logging.WARNING, entity_type=self.entity_type, count=rejected)
        self._records = tuple(accepted)
        present = {str(record.get("id")) for record in self._records if record.get("id") is not None}
        self._selected = {record_id: None for record_id in self._selected if record_id in present}
        log_event(logger, "records_loaded", level=logging.DEBUG, entity_type=self.entity_type, count=len(accepted))

    def refresh(self, data_source: DataSource, auth_credential: str | None) -> PageResult:
        self.load(data_source.fetch_all(self.entity_type, auth_credential))
        return self.view()

    # -- view state ---------------------------------------------------------------

    def set_search_text(self, text: str) -> None:
        self.state.search_text = text or ""
        self.state.pagination.page = 1
        self._changed("search", search_text=self.state.search_text)

    def set_filters(self, filters: Iterable[FilterCondition | Mapping[str, Any]]) -> None:
        self.state.filters = usable_conditions(filters)
        self.state.pagination.page = 1
        self._changed("filters", count=len(self.state.filters))

    def add_filter(self, condition: FilterCondition | Mapping[str, Any]) -> FilterCondition:
        validated = validate_filter(condition, len(self.state.filters))
        self.state.filters = [*self.state.filters, validated]
        self.state.pagination.page = 1
        self._changed("filter_added", field=validated.field, operator=validated.operator.value)
        return validated

    def remove_filter(self, index: int) -> FilterCondition:
        filters = list(self.state.filters)
        removed = filters.pop(index)
        self.state.filters = filters
        self.state.pagination.page = 1
        self._changed("filter_removed", field=removed.field)
        return removed

    def clear_filters(self) -> None:
        self.set_filters([])

    def set_sort(self, sort: SortSpec | str, direction: SortDirection | str | None = None) -> SortSpec:
        """Select a sort column.

        Re-selecting the active column flips its direction (asc -> desc -> asc);
        a new column starts ascending unless a direction is given.
        """
        current = self.state.sort
        if isinstance(sort, SortSpec):
            field_name = sort.field
            requested = sort.direction
            toggle = current is not None and current.field == field_name
        else:
            field_name = sort
            requested = SortDirection(direction) if direction is not None else SortDirection.ASC
            toggle = direction is None and current is not None and current.field == field_name
        resolved = current.direction.toggled() if toggle and current is not None else requested
        self.state.sort = SortSpec(field=field_name, direction=resolved)
        self._changed("sort", field=field_name, direction=resolved.value)
        return self.state.sort

    def clear_sort(self) -> None:
        self.state.sort = None
        self._changed("sort_cleared")

    def set_page(self, page: int) -> None:
        self.state.pagination.page = max(1, int(page))
        self._changed("page", page=self.state.pagination.page)

    def next_page(self) -> PageResult:
        current = self.view()
        if current.has_next:
            self.set_page(current.page + 1)
        return self.view()

    def previous_page(self) -> PageResult:
        current = self.view()
        if current.has_previous:
            self.set_page(current.page - 1)
        return self.view()

    def set_page_size(self, size: int) -> None:
        self.state.pagination.page_size = self._clamp_page_size(size)
        self.state.pagination.page = 1
        self._changed("page_size", page_size=self.state.pagination.page_size)

    def reset(self) -> None:
        self.state = self._initial_state()
        self._selected.clear()
        self._changed("reset")

    # -- derived output -----------------------------------------------------------

    def current_view(self) -> list[Record]:
        """All records matching search and filters, in sort order (no paging)."""
        return filtered_records(self._records, self.state, self.accessor)

    def view(self) -> PageResult:
        result = paginate(self.current_view(), self.state.pagination)
        if result.page != self.state.pagination.page:
            log_event(
                logger,
                "page_clamped",
                entity_type=self.entity_type,
                requested=self.state.pagination.page,
                effective=result.page,
                total_pages=result.total_pages,
            )
            self.state.pagination.page = result.page
        return result

    # -- selection ------------------------------------------------------------------

    @property
    def selected_ids(self) -> list[str]:
        return list(self._selected)

    def is_selected(self, record_id: Any) -> bool:
        return str(record_id) in self._selected

    def toggle_selection(self, record_id: Any) -> bool:
        key = str(record_id)
        if key in self._selected:
            del self._selected[key]
            return False
        self._selected[key] = None
        return True

    def select_page(self) -> list[str]:
        for record in self.view().records:
            if record.get("id") is not None:
                self._selected.setdefault(str(record["id"]), None)
        return self.selected_ids

    def clear_selection(self) -> None:
        self._selected.clear()

    # -- persistence ----------------------------------------------------------------

    def snapshot_state(self) -> dict[str, Any]:
        return serialize_state(self.state)

    def restore_state(self, payload: Mapping[str, Any] | None) -> None:
        self.state = hydrate_state(
            payload,
            self.accessor,
            default_page_size=self.default_page_size,
            max_page_size=self.max_page_size,
        )
        self._changed("restored")
