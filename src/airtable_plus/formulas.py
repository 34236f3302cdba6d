"""Helpers for building `filterByFormula` expressions."""

import re

_WHITESPACE = re.compile(r"\s")


def format_column_filter(column_name: object = "") -> str:
    """Wrap a column name containing whitespace in braces.

    >>> format_column_filter("Column ID")
    '{Column ID}'
    >>> format_column_filter("ID")
    'ID'
    """
    name = str(column_name)
    return f"{{{name}}}" if _WHITESPACE.search(name) else name


def format_value(value: object) -> str:
    """Render a Python value as a formula literal."""
    if value is None:
        return "BLANK()"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return str(value)


def match_formula(column_name: str, value: object) -> str:
    """Formula selecting records whose `column_name` equals `value`."""
    return f"{format_column_filter(column_name)} = {format_value(value)}"
