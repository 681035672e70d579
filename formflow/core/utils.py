"""
Shared utility functions for the FormFlow engine.
"""

from datetime import date, datetime
from typing import Any

from dateutil import parser as dateutil_parser

# Fills in missing date parts ("10:30", "March 2024") so parsing never
# depends on the current day.
DATE_ANCHOR = datetime(2000, 1, 1)


def parse_date(value: str) -> date | None:
    """Parse a date string into a date object.

    Supports ISO 8601 formats (YYYY-MM-DD), US-style MM/DD/YYYY and
    datetime strings. Returns None if the value cannot be parsed.

    Args:
        value: The date string to parse.

    Returns:
        A date object, or None if parsing fails.
    """
    if not value or not isinstance(value, str):
        return None

    try:
        parsed = dateutil_parser.parse(value, default=DATE_ANCHOR)
        return parsed.date()
    except (ValueError, TypeError, OverflowError):
        return None


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings, "{}" and empty containers.

    Booleans and numbers are never blank: ``False`` and ``0`` are answers.
    """
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return stripped == "" or stripped == "{}"
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def split_list_value(value: Any) -> list:
    """Turn a rule's list value into a list of candidates.

    Lists and tuples are used as-is; anything else is split on commas
    with each item stripped. A blank string yields an empty list.
    """
    if isinstance(value, (list, tuple)):
        return list(value)
    if value is None:
        return []
    text = stringify(value)
    if not text.strip():
        return []
    return [part.strip() for part in text.split(",")]


def stringify(value: Any) -> str:
    """Render a primitive answer value as text.

    None becomes "", booleans become "true"/"false", and lists are joined
    with ", " so list answers can be searched with substring operators.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(item) for item in value)
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError:
            # More digits than the interpreter will render
            return "inf" if value > 0 else "-inf"
    return str(value)
