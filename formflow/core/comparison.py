"""
Comparison engine: evaluates one rule against a present answer.

String operators work on normalized values. Ordering, blankness and
pattern operators look at the original values, because normalization
would hide the information they need.
"""

import logging
import re
from typing import Any

from formflow.core.normalizer import convert_to_numeric, normalize_value
from formflow.core.schema import AnswerType, RuleOperator
from formflow.core.utils import is_blank, split_list_value, stringify

logger = logging.getLogger(__name__)


def perform_comparison(
    operator: RuleOperator,
    normalized_actual: str,
    normalized_expected: str,
    actual_value: Any,
    expected_value: Any,
) -> bool:
    """Apply `operator` to an answer and a rule's expected value.

    Args:
        operator: The parsed rule operator.
        normalized_actual: The answer after `normalize_value`.
        normalized_expected: The expected value after `normalize_value`.
        actual_value: The answer as recorded.
        expected_value: The expected value as configured.

    Returns:
        The boolean outcome. Never raises for primitive inputs.
    """
    match operator:
        case RuleOperator.EQUALS:
            return normalized_actual == normalized_expected
        case RuleOperator.NOT_EQUALS:
            return normalized_actual != normalized_expected
        case RuleOperator.CONTAINS:
            return normalized_expected in normalized_actual
        case RuleOperator.STARTS_WITH:
            return normalized_actual.startswith(normalized_expected)
        case RuleOperator.ENDS_WITH:
            return normalized_actual.endswith(normalized_expected)
        case RuleOperator.GREATER_THAN:
            return convert_to_numeric(actual_value) > convert_to_numeric(expected_value)
        case RuleOperator.GREATER_THAN_OR_EQUAL:
            return convert_to_numeric(actual_value) >= convert_to_numeric(expected_value)
        case RuleOperator.LESS_THAN:
            return convert_to_numeric(actual_value) < convert_to_numeric(expected_value)
        case RuleOperator.LESS_THAN_OR_EQUAL:
            return convert_to_numeric(actual_value) <= convert_to_numeric(expected_value)
        case RuleOperator.IS_EMPTY:
            return is_blank(actual_value)
        case RuleOperator.IS_NOT_EMPTY:
            return not is_blank(actual_value)
        case RuleOperator.MATCHES_PATTERN:
            return matches_pattern(actual_value, expected_value)
        case RuleOperator.IN_LIST:
            return normalized_actual in _normalized_candidates(expected_value)
        case RuleOperator.NOT_IN_LIST:
            return normalized_actual not in _normalized_candidates(expected_value)

    # Not a RuleOperator; callers parse with RuleOperator.from_wire first
    return False


def matches_pattern(actual_value: Any, pattern: Any) -> bool:
    """Case-insensitive regex search; an invalid pattern never matches."""
    try:
        regex = re.compile(stringify(pattern), re.IGNORECASE)
    except re.error as e:
        logger.debug("Invalid regex pattern %r: %s", pattern, e)
        return False
    return regex.search(stringify(actual_value)) is not None


def compare(
    operator: RuleOperator | str,
    actual_value: Any,
    expected_value: Any,
    answer_type: AnswerType | str = AnswerType.TEXT_SHORT,
) -> bool:
    """Normalize both sides with `answer_type` and compare them.

    Unknown operator names evaluate to False and are logged.
    """
    parsed = RuleOperator.from_wire(operator)
    if parsed is None:
        logger.warning("Unknown rule operator: %r", operator)
        return False
    return perform_comparison(
        parsed,
        normalize_value(actual_value, answer_type),
        normalize_value(expected_value, answer_type),
        actual_value,
        expected_value,
    )


def _normalized_candidates(expected_value: Any) -> list[str]:
    return [
        normalize_value(candidate, AnswerType.TEXT_SHORT)
        for candidate in split_list_value(expected_value)
    ]
