"""
Absence policies: rule outcomes when the referenced answer is not there.

Three states are kept apart so rule authors can tell them apart:

- missing: the respondent never reached the question (no answer record)
- skipped: the respondent explicitly declined to answer
- empty: an answer record exists but holds no value

Ordinary comparison cannot apply to absent data, so each policy maps
the rule operator (and, for equality and list operators, the expected
value) straight to a boolean.
"""

from typing import Any

from formflow.core.schema import RuleOperator
from formflow.core.utils import is_blank, split_list_value, stringify

SKIP_SYNONYMS = frozenset({"skipped", "skip", "empty", ""})
EMPTY_SYNONYMS = frozenset({"empty", "", "null"})


def handle_missing_response(operator: RuleOperator) -> bool:
    """No answer record exists: only `is_empty` holds."""
    match operator:
        case RuleOperator.IS_EMPTY:
            return True
        case (
            RuleOperator.IS_NOT_EMPTY
            | RuleOperator.EQUALS
            | RuleOperator.NOT_EQUALS
            | RuleOperator.CONTAINS
            | RuleOperator.STARTS_WITH
            | RuleOperator.ENDS_WITH
            | RuleOperator.GREATER_THAN
            | RuleOperator.GREATER_THAN_OR_EQUAL
            | RuleOperator.LESS_THAN
            | RuleOperator.LESS_THAN_OR_EQUAL
            | RuleOperator.MATCHES_PATTERN
            | RuleOperator.IN_LIST
            | RuleOperator.NOT_IN_LIST
        ):
            return False
    return False


def handle_skipped_response(operator: RuleOperator, expected_value: Any) -> bool:
    """The answer was explicitly skipped.

    Equality holds only when the rule expects a skip synonym
    ("skipped", "skip", "empty" or "").
    """
    return _absent_outcome(operator, expected_value, _is_skip_synonym)


def handle_empty_response(operator: RuleOperator, expected_value: Any) -> bool:
    """An answer record exists but its value is blank.

    Equality holds only when the rule expects an empty synonym
    ("empty", "", "null") or a blank value.
    """
    return _absent_outcome(operator, expected_value, _is_empty_synonym)


def _absent_outcome(operator: RuleOperator, expected_value: Any, is_synonym) -> bool:
    match operator:
        case RuleOperator.IS_EMPTY:
            return True
        case RuleOperator.IS_NOT_EMPTY:
            return False
        case RuleOperator.EQUALS:
            return is_synonym(expected_value)
        case RuleOperator.NOT_EQUALS:
            return not is_synonym(expected_value)
        case (
            RuleOperator.CONTAINS
            | RuleOperator.STARTS_WITH
            | RuleOperator.ENDS_WITH
            | RuleOperator.MATCHES_PATTERN
        ):
            return False
        case (
            RuleOperator.GREATER_THAN
            | RuleOperator.GREATER_THAN_OR_EQUAL
            | RuleOperator.LESS_THAN
            | RuleOperator.LESS_THAN_OR_EQUAL
        ):
            return False
        case RuleOperator.IN_LIST:
            return any(is_synonym(v) for v in split_list_value(expected_value))
        case RuleOperator.NOT_IN_LIST:
            return not any(is_synonym(v) for v in split_list_value(expected_value))
    return False


def _token(value: Any) -> str:
    return stringify(value).lower()


def _is_skip_synonym(value: Any) -> bool:
    return _token(value) in SKIP_SYNONYMS


def _is_empty_synonym(value: Any) -> bool:
    return is_blank(value) or _token(value) in EMPTY_SYNONYMS
