from __future__ import annotations

import sys
from typing import Sequence, TextIO

from .fields import FieldAccessor
from .models import PageResult

MAX_CELL_WIDTH = 40


def _clip(text: str) -> str:
    return text if len(text) <= MAX_CELL_WIDTH else text[: MAX_CELL_WIDTH - 3] + "..."


def render_table(result: PageResult, accessor: FieldAccessor, columns: Sequence[str] | None = None) -> list[str]:
    selected = list(columns or accessor.display_columns())
    headers = [accessor.label(name) for name in selected]
    if not result.records:
        return ["(no results)"]

    cells = [[_clip(accessor.display(record, name)) for name in selected] for record in result.records]
    widths = [max(len(headers[idx]), *(len(row[idx]) for row in cells)) for idx in range(len(selected))]

    lines = [
        " | ".join(header.ljust(widths[idx]) for idx, header in enumerate(headers)),
        "-+-".join("-" * width for width in widths),
    ]
    for row in cells:
        lines.append(" | ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row)))
    return lines


def page_summary(result: PageResult) -> str:
    if not result.total_items:
        return "Showing 0 of 0"
    return (
        f"Showing {result.start_index}-{result.end_index} of {result.total_items}"
        f" (page {result.page} of {result.total_pages})"
    )


def print_table(
    title: str,
    result: PageResult,
    accessor: FieldAccessor,
    columns: Sequence[str] | None = None,
    stream: TextIO | None = None,
) -> None:
    out = stream or sys.stdout
    print(f"\n{title}", file=out)
    for line in render_table(result, accessor, columns):
        print(line, file=out)
    print(page_summary(result), file=out)
