"""Value normalisation shared by the search, filter and sort stages.

Records arrive as decoded JSON, so numbers may be ints, floats or numeric
strings and timestamps are ISO-8601 strings. Nothing here raises: a value that
cannot be coerced comes back as ``None``.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

MISSING_DISPLAY = "--"


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def to_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    elif isinstance(value, str):
        text = value.strip()
        # Bare numbers are not dates; "2024" would otherwise parse as a year.
        if len(text) < 10 or to_number(text) is not None:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_display(value: Any) -> str:
    if is_missing(value):
        return MISSING_DISPLAY
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        parts = [to_display(item) for item in value if not is_missing(item)]
        return ", ".join(parts) if parts else MISSING_DISPLAY
    if isinstance(value, dict):
        label = value.get("name") or value.get("label")
        return to_display(label)
    return str(value).strip()


def fold(text: str) -> str:
    return text.casefold()
