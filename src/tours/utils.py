import math
from decimal import Decimal, InvalidOperation
from typing import Any, Union

Number = Union[int, float]

def to_number(value: Any) -> Number:
    """Coerce an arbitrary stored value to a number, defaulting to 0.

    ``None``, empty strings and anything that does not parse as a number
    (or parses as NaN) become 0. Negative and fractional values pass through.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return 0 if math.isnan(value) else value
    if isinstance(value, Decimal):
        if value.is_nan():
            return 0
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return 0
        return 0 if math.isnan(parsed) else parsed
    try:
        parsed = float(value)
    except (TypeError, ValueError, InvalidOperation):
        return 0
    return 0 if math.isnan(parsed) else parsed
