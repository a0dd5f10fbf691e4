from __future__ import annotations

from typing import Any, Iterable, Mapping

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ClientValidationError, ValidationIssue
from .models import FilterCondition


def validate_filter(condition: FilterCondition | Mapping[str, Any], index: int | None = None) -> FilterCondition:
    if isinstance(condition, FilterCondition):
        return condition
    if not isinstance(condition, Mapping):
        raise ClientValidationError([ValidationIssue(field="filter", reason="filter must be an object", index=index)])
    try:
        return FilterCondition.model_validate(dict(condition))
    except PydanticValidationError as exc:
        raise ClientValidationError(_issues_from(exc, index)) from exc


def validate_filters(conditions: Iterable[FilterCondition | Mapping[str, Any]]) -> list[FilterCondition]:
    return [validate_filter(condition, idx) for idx, condition in enumerate(conditions)]


def parse_filter_expression(expression: str) -> FilterCondition:
    """Parse ``field:operator[:value]`` as typed on the command line.

    ``between`` takes ``low..high``; ``in``/``not_in`` take a comma separated list.
    """
    parts = expression.split(":", 2)
    if len(parts) < 2 or not parts[0].strip() or not parts[1].strip():
        raise ClientValidationError(
            [ValidationIssue(field="filter", reason=f"expected field:operator[:value], got {expression!r}")]
        )
    field, operator = parts[0].strip(), parts[1].strip()
    payload: dict[str, Any] = {"field": field, "operator": operator}
    if len(parts) == 3:
        raw = parts[2]
        if operator == "between" and ".." in raw:
            low, high = raw.split("..", 1)
            payload["value"] = [low.strip(), high.strip()]
        else:
            payload["value"] = raw
    return validate_filter(payload)


def _issues_from(exc: PydanticValidationError, index: int | None) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "value"
        message = str(error.get("msg") or "invalid")
        issues.append(ValidationIssue(field=location, reason=message, index=index))
    return issues
