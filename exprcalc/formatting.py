"""Display formatting for Values."""

from __future__ import annotations

import math
from typing import Any

from .values import Builtin, Closure, ErrorValue, is_int

RADIXES = ('dec', 'hex', 'bin')
DEFAULT_PRECISION = 15


def format_int(value: int, radix: str = 'dec') -> str:
    if radix == 'hex':
        return format(value, '#x')
    if radix == 'bin':
        return format(value, '#b')
    return str(value)


def format_float(value: float, precision: int = DEFAULT_PRECISION) -> str:
    """Adaptive precision; integral results keep a '.0' so they still read as Float."""
    if math.isnan(value):
        return 'nan'
    if math.isinf(value):
        return 'inf' if value > 0 else '-inf'
    text = f"{value:.{precision}g}"
    if not any(c in text for c in '.e'):
        text += '.0'
    return text


def format_value(value: Any, radix: str = 'dec', precision: int = DEFAULT_PRECISION) -> str:
    """Return the display string for a Value."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if is_int(value):
        return format_int(value, radix)
    if isinstance(value, float):
        return format_float(value, precision)
    if isinstance(value, tuple):
        return '[' + ', '.join(format_value(v, radix, precision) for v in value) + ']'
    if isinstance(value, Closure):
        params = ', '.join(value.params)
        if value.name:
            return f"<fn {value.name} |{params}|>"
        return f"<fn |{params}|>"
    if isinstance(value, Builtin):
        return f"<builtin {value.name}>"
    if isinstance(value, ErrorValue):
        return format_error(value)
    return repr(value)


def format_error(err: ErrorValue) -> str:
    if err.pos is None:
        return f"{err.kind}: {err.message}"
    return f"{err.kind}: {err.message} (at column {err.pos + 1})"
