"""
Value normalization for submitted form values.
Every raw value passes through clean_field() before validation or storage.
"""

import math
import re
import logging
from typing import Any

logger = logging.getLogger(__name__)

FALSE_STRINGS = ('', '0', 'false')


# Numeric string forms accepted by a form's numeric parse
DECIMAL_PATTERN = re.compile(r'^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$')
INTEGER_PATTERN = re.compile(r'^[+-]?[0-9]+$')
PREFIXED_PATTERN = re.compile(r'^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$')
INFINITY_PATTERN = re.compile(r'^([+-]?)Infinity$')


def _parse_number(value: Any) -> Any:
    """
    Parse a value into int or float; unparseable input becomes NaN.

    Strings follow browser numeric parsing, so Python-only spellings such as
    ``1_000``, ``inf`` or ``nan`` are rejected.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text == '':
            return 0
        if INTEGER_PATTERN.match(text):
            return int(text)
        if DECIMAL_PATTERN.match(text):
            return float(text)
        if PREFIXED_PATTERN.match(text):
            return int(text, 0)
        infinity = INFINITY_PATTERN.match(text)
        if infinity:
            return -math.inf if infinity.group(1) == '-' else math.inf
    logger.debug(f"Could not parse {value!r} as a number")
    return math.nan


def clean_field(field: Any, value: Any) -> Any:
    """
    Coerce a raw value into the field's typed representation.

    Args:
        field: Field descriptor (only ``type`` is read)
        value: Raw submitted value

    Returns:
        Cleaned value. ``None`` passes through; an empty string on a number
        field becomes ``None`` (absent, not zero).
    """
    if value is None:
        return value

    if field.type == 'number':
        if value == '':
            return None
        return _parse_number(value)

    if field.type == 'boolean':
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value not in FALSE_STRINGS
        if isinstance(value, (int, float)) and value == 0:
            return False
        return True

    return value


def is_blank(value: Any) -> bool:
    """True for None and the empty string, the two "no value" markers."""
    return value is None or (isinstance(value, str) and value == '')


def loose_equals(left: Any, right: Any) -> bool:
    """
    Compare a submitted value with an option value, coercing like form input does.

    Strings from the wire compare equal to numbers and booleans with the same
    numeric meaning ("1" == 1, True == 1); None only equals None.
    """
    if left is None or right is None:
        return left is None and right is None
    if type(left) is type(right):
        return left == right
    if isinstance(left, bool):
        left = int(left)
    if isinstance(right, bool):
        right = int(right)
    if isinstance(left, (int, float)) and isinstance(right, str):
        right = _parse_number(right)
    elif isinstance(left, str) and isinstance(right, (int, float)):
        left = _parse_number(left)
    return left == right
