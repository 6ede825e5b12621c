"""Rendering of values inside audit detail strings and graph labels."""

from typing import Any


def render_value(value: Any) -> str:
    """Render a value the way audit details show it.

    Booleans render as ``true``/``false``, integral floats drop their
    fractional part and ``None`` renders as ``null``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def render_score(value: float) -> str:
    """Render a 0-1 score with two decimals."""
    return f"{value:.2f}"
