"""Configuration types for the client.

A `Config` is immutable: instance defaults are created once, and every
call works on its own merged copy.
"""

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from airtable_plus.errors import AirtablePlusError, ErrorKind

logger = logging.getLogger(__name__)

# Read-time hook: receives a copy of each record, returns the replacement
# or a falsy value to drop it.
Transform: TypeAlias = Callable[[Any], Any]


class KeyCasing(StrEnum):
    """How column names are presented on read."""

    AS_IS = "as_is"
    CAMEL = "camel"


class ResultShape(StrEnum):
    """Presentation of records returned by the client."""

    PLAIN = "plain"
    """Dictionaries with `id`, `fields` and `createdTime`."""

    RICH = "rich"
    """Store-native record objects with bound helpers."""


class Config(BaseModel):
    """Settings applied to every record operation."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    api_key: str | None = None
    """Airtable personal access token."""

    base_id: str | None = None
    """Base the table lives in."""

    table_name: str | None = None
    """Table name or id."""

    key_casing: KeyCasing = KeyCasing.AS_IS
    """Rename keys of plain records to camelCase on read."""

    concurrency: PositiveInt = 1
    """Maximum number of batches in flight for one operation."""

    result_shape: ResultShape = ResultShape.PLAIN
    """Plain dictionaries or rich store records."""

    typecast: bool = False
    """Let the API convert string values to the column type on write."""

    transform: Callable[[Any], Any] | None = Field(default=None, exclude=True)
    """Optional per-record hook applied by `read`."""

    @field_validator("transform", mode="before")
    @classmethod
    def _drop_invalid_transform(cls, value: object) -> object:
        if value is not None and not callable(value):
            logger.warning("Ignoring non-callable transform of type %s", type(value).__name__)
            return None
        return value


class TableRef(BaseModel):
    """Source or destination of a table copy.

    Keys may be given in snake_case or camelCase. Unknown keys are rejected.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    table_name: str | None = None
    base_id: str | None = None
    api_key: str | None = None

    fields: tuple[str, ...] | None = None
    """Columns to copy from the source. All columns when None."""

    where: str | None = None
    """Formula restricting which source records are copied."""

    concurrency: PositiveInt | None = None

    @classmethod
    def coerce(cls, ref: "TableRef | str | dict[str, object]") -> "TableRef":
        """Accept an instance, a bare table name, or a mapping."""
        if isinstance(ref, cls):
            return ref
        if isinstance(ref, str):
            return cls(table_name=ref)
        try:
            return cls.model_validate(ref)
        except ValidationError as e:
            msg = f"Invalid table reference: {e}"
            raise AirtablePlusError(msg, kind=ErrorKind.INVALID_CONFIGURATION, source=e) from e

    def overrides(self) -> dict[str, Any]:
        """Configuration keys this reference sets explicitly."""
        return self.model_dump(
            include={"table_name", "base_id", "api_key", "concurrency"},
            exclude_none=True,
        )
