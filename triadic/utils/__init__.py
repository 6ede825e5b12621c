"""Utility functions."""

from triadic.utils.format import render_score, render_value
from triadic.utils.time import format_declaration_time, format_timestamp, parse_timestamp, utc_now

__all__ = [
    "utc_now",
    "format_timestamp",
    "format_declaration_time",
    "parse_timestamp",
    "render_value",
    "render_score",
]
