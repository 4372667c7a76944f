"""Decimal precision helpers."""

from __future__ import annotations

import math
from decimal import ROUND_DOWN, ROUND_HALF_UP, Context, Decimal, InvalidOperation
from typing import Any

# rounding modes
TRUNCATE = 0
ROUND = 1

# counting modes
DECIMAL_PLACES = 2

# padding modes
NO_PADDING = 5
PAD_WITH_ZERO = 6

_CONTEXT = Context(prec=60)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot apply precision to {value!r}")
        # repr gives the shortest string that round-trips the float
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a number: {value!r}") from exc


def decimal_to_precision(
    value: Any,
    rounding_mode: int = ROUND,
    precision: int | None = None,
    counting_mode: int = DECIMAL_PLACES,
    padding_mode: int = NO_PADDING,
) -> str:
    """Format ``value`` with ``precision`` decimal places.

    Negative precision rounds to tens, hundreds, and so on. With
    ``NO_PADDING`` trailing zeros of the fractional part are dropped.
    """
    if counting_mode != DECIMAL_PLACES:
        raise ValueError(f"Unsupported counting mode: {counting_mode}")
    number = _to_decimal(value)
    if precision is None:
        string = format(number, "f")
    else:
        quantum = Decimal(1).scaleb(-int(precision))
        rounding = ROUND_HALF_UP if rounding_mode == ROUND else ROUND_DOWN
        result = number.quantize(quantum, rounding=rounding, context=_CONTEXT)
        string = format(result, "f")
        if padding_mode == PAD_WITH_ZERO and precision > 0 and "." not in string:
            string += "." + "0" * int(precision)
    if padding_mode == NO_PADDING and "." in string:
        string = string.rstrip("0").rstrip(".")
    if string in {"-0", "", "-"}:
        string = "0"
    return string


def precision_from_string(string: str) -> int:
    """Count significant decimal places, e.g. ``"0.00100"`` gives 3."""
    text = format(_to_decimal(string), "f")
    if "." not in text:
        return 0
    return len(text.rstrip("0").split(".")[1])


def number_to_object(number: Any) -> dict[str, int]:
    """Encode a number as an integer mantissa and a count of decimal places.

    ``0.15`` becomes ``{"value": 15, "decimals": 2}``. The number is rounded
    to 10 decimal places first.
    """
    string = decimal_to_precision(number, ROUND, 10, DECIMAL_PLACES, NO_PADDING)
    decimals = precision_from_string(string)
    return {
        "value": int(string.replace(".", "")),
        "decimals": decimals,
    }


def object_to_number(obj: Any) -> float | None:
    """Inverse of :func:`number_to_object`. Malformed input gives ``None``."""
    if not isinstance(obj, dict):
        return None
    value = obj.get("value")
    decimals = obj.get("decimals")
    if value is None or decimals is None:
        return None
    try:
        mantissa = decimal_to_precision(value, ROUND, 0)
        exponent = decimal_to_precision(-int(decimals), ROUND, 0)
        return float(f"{mantissa}e{exponent}")
    except (TypeError, ValueError):
        return None
