from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Sequence

from .browser import RecordBrowser
from .logger import get_logger, log_event
from .models import FilterCondition

logger = get_logger(__name__)


def export_view(
    browser: RecordBrowser,
    *,
    output_dir: str | Path = "exports",
    columns: Sequence[str] | None = None,
    filename: str | None = None,
) -> Path:
    """Write every row of the current view (all pages, in sort order) to CSV."""
    selected = list(columns or browser.accessor.display_columns())
    rows = browser.current_view()
    accessor = browser.accessor
    state = browser.state

    destination = Path(output_dir)
    destination.mkdir(parents=True, exist_ok=True)
    now = datetime.now().astimezone()
    path = destination / (filename or f"{browser.entity_type}_{now.strftime('%Y%m%d_%H%M%S')}.csv")

    filters = [describe_filter(condition) for condition in state.filters]
    with path.open("w", newline="", encoding="utf-8-sig") as handle:
        handle.write(f"# timestamp_local: {now.isoformat()}\n")
        handle.write(f"# entity: {browser.entity_type}\n")
        handle.write(f"# search: {state.search_text or 'N/A'}\n")
        handle.write(f"# filters: {'; '.join(filters) or 'N/A'}\n")
        if state.sort:
            handle.write(f"# sort: {state.sort.field} {state.sort.direction.value}\n")
        writer = csv.writer(handle)
        writer.writerow([accessor.label(name) for name in selected])
        for record in rows:
            writer.writerow([accessor.display(record, name) for name in selected])

    log_event(logger, "view_exported", entity_type=browser.entity_type, rows=len(rows), path=str(path))
    return path


def describe_filter(condition: FilterCondition) -> str:
    text = f"{condition.field} {condition.operator.value}"
    if condition.value is None:
        return text
    if isinstance(condition.value, (list, tuple)):
        return f"{text} {', '.join(str(item) for item in condition.value)}"
    return f"{text} {condition.value}"
