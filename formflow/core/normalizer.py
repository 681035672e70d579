"""
Value normalization for rule comparison.

Both the respondent's answer and the rule's expected value are turned
into a canonical string using the answer type of the question that
produced the answer. Every function here is pure and never raises for
primitive inputs.
"""

import math
import re
from typing import Any

from formflow.core.schema import (
    BOOLEAN_TYPES,
    CHOICE_TYPES,
    NUMERIC_TYPES,
    TEMPORAL_TYPES,
    TEXT_TYPES,
    AnswerType,
)
from formflow.core.utils import is_blank, parse_date, stringify

TRUE_TOKENS = frozenset({"true", "1", "yes", "y", "sí", "si", "ok", "okay"})
FALSE_TOKENS = frozenset({"false", "0", "no", "n", "not", "nope"})

# Currency symbols, thousands separators and whitespace
_NUMERIC_NOISE = re.compile(r"[$€£¥,\s]")
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def normalize_value(value: Any, answer_type: AnswerType | str) -> str:
    """Canonicalize a value for comparison against another normalized value.

    Args:
        value: A raw answer or expected value (string, number, bool, list).
        answer_type: The answer type of the question the rule inspects.
            Unknown type names fall back to the default text policy.

    Returns:
        The canonical string; "" for blank input.
    """
    if is_blank(value):
        return ""

    answer_type = _coerce_type(answer_type)
    text = stringify(value)

    if answer_type in BOOLEAN_TYPES:
        return normalize_boolean(text)
    if answer_type in TEXT_TYPES or answer_type in CHOICE_TYPES:
        return text.strip().lower()
    if answer_type in NUMERIC_TYPES:
        return clean_numeric_value(text)
    if answer_type in TEMPORAL_TYPES:
        return normalize_date(text)
    return text.strip().lower()


def normalize_boolean(text: str) -> str:
    """Map yes/no synonyms to "true"/"false"; other tokens pass through lower-cased."""
    token = text.strip().lower()
    if token in TRUE_TOKENS:
        return "true"
    if token in FALSE_TOKENS:
        return "false"
    return token


def normalize_date(text: str) -> str:
    """Reformat a parseable date as YYYY-MM-DD, else return it trimmed."""
    parsed = parse_date(text.strip())
    if parsed is None:
        return text.strip()
    return parsed.strftime("%Y-%m-%d")


def clean_numeric_value(text: str) -> str:
    """Strip currency symbols and separators when the rest is a number.

    Non-numeric input is returned trimmed but otherwise untouched.
    """
    stripped = text.strip()
    if not stripped:
        return ""
    cleaned = _NUMERIC_NOISE.sub("", stripped)
    if _NUMBER.match(cleaned):
        return cleaned
    return stripped


def parse_number(value: Any) -> float | None:
    """Parse a possibly currency-formatted value, or None if not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            # Beyond float range
            return math.inf if value > 0 else -math.inf
    if is_blank(value):
        return None
    cleaned = _NUMERIC_NOISE.sub("", stringify(value))
    if not _NUMBER.match(cleaned):
        return None
    # Out-of-range digit strings parse to +/-inf
    return float(cleaned)


def convert_to_numeric(value: Any) -> float:
    """Numeric coercion used by ordering operators; non-numeric becomes 0.0."""
    number = parse_number(value)
    return 0.0 if number is None else number


def _coerce_type(answer_type: AnswerType | str) -> AnswerType | None:
    if isinstance(answer_type, AnswerType):
        return answer_type
    try:
        return AnswerType(str(answer_type).strip().lower())
    except ValueError:
        return None
