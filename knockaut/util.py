"""Utility helpers for the Knockaut client."""

from __future__ import annotations

import math
from typing import Any

from .const import VariableType

_FALSE_STRINGS = frozenset({"", "0", "false", "off", "no"})


def float_or_none(value: Any) -> float | None:
    """Return value as ``float`` if possible, else ``None``.

    Converts booleans, integers, floats and numeric strings to ``float``
    while safely handling ``None`` and non-numeric inputs.
    """
    if value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            num = float(value)
        else:
            string_val = str(value).strip()
            if not string_val:
                return None
            num = float(string_val)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def coerce_value(value: Any, kind: VariableType) -> Any:
    """Coerce ``value`` to the Python type backing a variable ``kind``."""

    if kind is VariableType.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() not in _FALSE_STRINGS
        return bool(value)
    if kind is VariableType.INTEGER:
        num = float_or_none(value)
        return int(num) if num is not None else None
    if kind is VariableType.FLOAT:
        return float_or_none(value)
    return "" if value is None else str(value)


def is_numeric_identifier(value: Any) -> bool:
    """Return True for object ids given as ``int`` or a string of digits."""

    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and value.isdecimal()
