from __future__ import annotations

import pytest

from crm_browser.exceptions import ClientValidationError
from crm_browser.filter_validation import parse_filter_expression, validate_filter, validate_filters
from crm_browser.models import FilterCondition, FilterOperator


@pytest.mark.parametrize(
    "payload",
    [
        {"field": "amount", "operator": "equals"},
        {"field": "amount", "operator": "between", "value": [1, 2, 3]},
        {"field": "amount", "operator": "between", "value": "1-2"},
        {"field": "amount", "operator": "between", "value": [None, 5]},
        {"field": "stage", "operator": "in", "value": 3},
        {"field": "stage", "operator": "sounds_like", "value": "x"},
        {"field": "", "operator": "is_null"},
    ],
)
def test_invalid_conditions_are_rejected(payload: dict) -> None:
    with pytest.raises(ClientValidationError):
        validate_filter(payload)


def test_value_is_optional_only_for_null_checks() -> None:
    condition = validate_filter({"field": "amount", "operator": "is_not_null"})

    assert condition.operator is FilterOperator.IS_NOT_NULL
    assert condition.value is None


def test_list_operators_split_comma_strings() -> None:
    condition = validate_filter({"field": "stage", "operator": "not_in", "value": "Won, Lost,,"})

    assert condition.value == ["Won", "Lost"]


def test_logical_operator_is_carried_but_reserved() -> None:
    condition = validate_filter(
        {"field": "stage", "operator": "equals", "value": "Won", "logicalOperator": "OR", "id": "f1"}
    )

    assert condition.logical_operator == "OR"
    assert condition.id == "f1"


def test_validate_filters_reports_index() -> None:
    with pytest.raises(ClientValidationError) as exc_info:
        validate_filters(
            [
                FilterCondition(field="amount", operator="equals", value=1),
                {"field": "amount", "operator": "between", "value": [1]},
            ]
        )

    issue = exc_info.value.issues[0]
    assert issue.index == 1
    assert str(exc_info.value).startswith("filter 1 ")


def test_parse_filter_expression() -> None:
    between = parse_filter_expression("probability:between:40..80")
    membership = parse_filter_expression("stage:in:Won,Lost")
    null_check = parse_filter_expression("amount:is_null")
    with_colon = parse_filter_expression("website:starts_with:https://acme")

    assert between.value == ("40", "80")
    assert membership.value == ["Won", "Lost"]
    assert null_check.value is None
    assert with_colon.value == "https://acme"


@pytest.mark.parametrize("expression", ["amount", ":equals:1", "amount:equals", "amount:between:40"])
def test_parse_filter_expression_rejects_bad_input(expression: str) -> None:
    with pytest.raises(ClientValidationError):
        parse_filter_expression(expression)
