"""
Coercion of raw user text into typed query values.

The visual builders only ever hand us text. Each piece of text is classified
into exactly one kind, checked in a fixed order:

    1. "true" / "false"   -> BOOLEAN
    2. "null"             -> NULL
    3. a decimal number   -> NUMBER (int when there is no fraction or exponent)
    4. "[...]" valid JSON -> ARRAY
    5. anything else      -> STRING

A bracketed value that is not a valid JSON array falls through to STRING.
Numbers are decimal only: "Infinity", "NaN" and hex such as "0x10" stay
strings.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


class ValueKind(str, Enum):
    """Kind of a coerced value."""

    BOOLEAN = "boolean"
    NULL = "null"
    NUMBER = "number"
    ARRAY = "array"
    STRING = "string"


@dataclass(frozen=True)
class ParsedValue:
    """A value together with the kind it was classified as."""

    kind: ValueKind
    value: Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_number(text: str) -> int | float | None:
    """
    Parse text as a decimal number.

    Surrounding whitespace is ignored; blank text is not a number.

    Returns:
        int or float, or None if the text is not entirely a number
    """
    stripped = text.strip()
    if not stripped:
        return None
    if _INTEGER_RE.match(stripped):
        return int(stripped)
    if _DECIMAL_RE.match(stripped):
        return float(stripped)
    return None


def _parse_array(text: str) -> list | None:
    if not (text.startswith("[") and text.endswith("]")):
        return None
    try:
        parsed = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def classify_value(text: str) -> ParsedValue:
    """
    Classify raw text into a typed value.

    Args:
        text: Raw user input

    Returns:
        ParsedValue with the winning kind and the coerced value
    """
    if text == "true":
        return ParsedValue(ValueKind.BOOLEAN, True)
    if text == "false":
        return ParsedValue(ValueKind.BOOLEAN, False)
    if text == "null":
        return ParsedValue(ValueKind.NULL, None)

    number = parse_number(text)
    if number is not None:
        return ParsedValue(ValueKind.NUMBER, number)

    array = _parse_array(text)
    if array is not None:
        return ParsedValue(ValueKind.ARRAY, array)

    return ParsedValue(ValueKind.STRING, text)


def parse_value(text: str) -> Any:
    """Coerce raw text to the value a query condition should compare against."""
    return classify_value(text).value


def parse_scalar(text: str) -> Any:
    """
    Coerce a tabular cell to a scalar.

    Same order as parse_value, except that arrays are never attempted and an
    empty cell is null.
    """
    if text == "":
        return None
    parsed = classify_value(text)
    if parsed.kind is ValueKind.ARRAY:
        return text
    return parsed.value
