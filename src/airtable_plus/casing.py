"""Key renaming for plain records."""

import re
from typing import Any

from pydantic.alias_generators import to_camel, to_snake

_SEPARATORS = re.compile(r"[\s\-_]+")


def camel_key(key: str) -> str:
    """lowerCamelCase form of a column name such as "First Name" or "FirstName"."""
    return to_camel(to_snake(_SEPARATORS.sub("_", key.strip())))


def _convert(value: Any) -> Any:
    if isinstance(value, dict):
        return {camel_key(k) if isinstance(k, str) else k: _convert(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_convert(item) for item in value]
    return value


def to_camel_case(records: list[Any]) -> list[Any]:
    """Return new records with every mapping key, at any depth, in camelCase."""
    return [_convert(record) for record in records]
