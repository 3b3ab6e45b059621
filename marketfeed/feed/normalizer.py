"""Unit and value normalization for feed cells.

- Dimensions (height/width/length) are converted to centimeters
- Weight is converted to kilograms
- Boolean-like cells become the localized labels "Так" / "Ні"
- Tag cells expand into one or more ``TagParam`` entries

Numbers are parsed leniently: the comma is a decimal separator and trailing
text is ignored ("10,5 мм" -> 10.5).
"""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Union

from marketfeed.models.feed import (
    CELL_IMAGE_SENTINEL,
    DIMENSION_TAGS,
    WEIGHT_TAG,
    ParseFailurePolicy,
    TagParam,
)

# Multi-value features field, split on commas
FEATURES_GROUP_NAME = "Особливості"

YES_LABEL = "Так"
NO_LABEL = "Ні"

TRUE_VALUES = frozenset({"true", "1", "так", "да"})
FALSE_VALUES = frozenset({"false", "0", "ні", "нет"})

MILLIMETER_UNITS = frozenset({"мм", "mm"})
METER_UNITS = frozenset({"м", "m"})
GRAM_UNITS = frozenset({"г", "g"})

_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_TWO_PLACES = Decimal("0.01")


def parse_decimal(raw: Any) -> Optional[Decimal]:
    """Parse the leading number of a cell, treating ',' as the decimal separator."""
    if raw is None:
        return None
    text = str(raw).strip().replace(",", ".")
    match = _NUMBER_PATTERN.match(text)
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def round_two_places(value: Decimal) -> Optional[Decimal]:
    """Round half-up to two decimals; None when the result exceeds the context precision."""
    try:
        return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def format_number(value: Union[Decimal, float, int]) -> str:
    """Render a number with at most two decimals and no trailing zeros.

    Raises ValueError for numbers too large to round at two decimals.

    >>> format_number(Decimal("120.00"))
    '120'
    >>> format_number(1.05)
    '1.05'
    """
    rounded = round_two_places(Decimal(str(value)))
    if rounded is None:
        raise ValueError(f"Number out of range: {value}")
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def _normalize_units(units: Optional[str]) -> str:
    return (units or "").strip().lower()


def convert_length(raw: Any, units: Optional[str] = None) -> Optional[float]:
    """Convert a length to centimeters (mm / 10, m * 100, cm or unknown unchanged).

    Returns None when the cell is not a number or too large to round.
    """
    number = parse_decimal(raw)
    if number is None:
        return None
    unit = _normalize_units(units)
    if unit in MILLIMETER_UNITS:
        number = number / 10
    elif unit in METER_UNITS:
        number = number * 100
    rounded = round_two_places(number)
    return float(rounded) if rounded is not None else None


def convert_weight(raw: Any, units: Optional[str] = None) -> Optional[float]:
    """Convert a weight to kilograms (g / 1000, kg or unknown unchanged).

    Returns None when the cell is not a number or too large to round.
    """
    number = parse_decimal(raw)
    if number is None:
        return None
    if _normalize_units(units) in GRAM_UNITS:
        number = number / 1000
    rounded = round_two_places(number)
    return float(rounded) if rounded is not None else None


def convert_physical(
    field_name: str,
    raw: str,
    units: Optional[str],
    on_failure: ParseFailurePolicy = ParseFailurePolicy.OMIT,
) -> Optional[str]:
    """Convert a dimension or weight cell to its feed text.

    Unparseable input is dropped (``OMIT``) or returned untouched
    (``PASS_THROUGH``).
    """
    if field_name == WEIGHT_TAG:
        converted = convert_weight(raw, units)
    elif field_name in DIMENSION_TAGS:
        converted = convert_length(raw, units)
    else:
        raise ValueError(f"Not a physical field: {field_name}")

    if converted is None:
        return raw if on_failure == ParseFailurePolicy.PASS_THROUGH else None
    return format_number(converted)


def with_units(value: str, units: Optional[str]) -> str:
    """Append units as a literal suffix ("20" + "см" -> "20 см")."""
    units = (units or "").strip()
    return f"{value} {units}" if units else value


def is_boolean_like(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if value is None:
        return False
    text = str(value).strip().lower()
    return text in TRUE_VALUES or text in FALSE_VALUES


def boolean_to_label(value: Any) -> str:
    """Map a boolean-like value to "Так" / "Ні"; anything else maps to ''."""
    if value is True:
        return YES_LABEL
    if value is False:
        return NO_LABEL
    if value is None:
        return ""
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return YES_LABEL
    if text in FALSE_VALUES:
        return NO_LABEL
    return ""


def process_tag_param_value(
    name: str,
    value: Any,
    units: Optional[str] = None,
) -> List[TagParam]:
    """Expand one tag cell into zero or more ``TagParam`` entries.

    Args:
        name: Param group name (``Tag name`` or the raw column header)
        value: Cell value
        units: Optional literal suffix for plain values

    Returns:
        Boolean-like values give a single Так/Ні param; the features group
        is split on commas; anything else gives one param.
    """
    if value is None:
        return []

    if is_boolean_like(value):
        label = boolean_to_label(value)
        return [TagParam(name=name, value=label)] if label else []

    text = str(value).strip()
    if not text or text.lower() == CELL_IMAGE_SENTINEL.lower():
        return []

    if name == FEATURES_GROUP_NAME:
        return [
            TagParam(name=name, value=part.strip())
            for part in text.split(",")
            if part.strip()
        ]

    return [TagParam(name=name, value=with_units(text, units))]


def clean_price(value: Any) -> Decimal:
    """Best-effort price parsing for sheet cells ("1 299,50 грн" -> 1299.50).

    Returns 0 when nothing numeric can be recovered or the number is too
    large to round at two decimals.
    """
    if value is None or value == "":
        return Decimal("0")
    text = re.sub(r"\s", "", str(value)).replace(",", ".", 1)
    text = re.sub(r"[^0-9.]", "", text)
    number = parse_decimal(text)
    if number is None or round_two_places(number) is None:
        return Decimal("0")
    return number
