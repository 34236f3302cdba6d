"""Query parameters for table selections.

Field names follow Python conventions, but the Airtable API spelling
(`filterByFormula`, `maxRecords`, ...) is accepted as well.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SortDirection(StrEnum):
    """Sort order for a single field."""

    ASC = "asc"
    DESC = "desc"


class SortField(BaseModel, frozen=True):
    """One entry of a multi-field sort."""

    field: str
    direction: SortDirection = SortDirection.ASC


class QueryParams(BaseModel):
    """Options for reading records from a table."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    filter_by_formula: str | None = None
    """Formula a record must satisfy to be returned."""

    max_records: int | None = Field(default=None, gt=0)
    """Upper bound on the total number of records returned."""

    page_size: int | None = Field(default=None, gt=0, le=100)
    """Records per page requested from the API."""

    sort: tuple[SortField, ...] = ()
    """Sort order, applied left to right."""

    view: str | None = None
    """View name or id whose filters and order apply."""

    fields: tuple[str, ...] | None = None
    """Columns to return. All columns when None."""

    cell_format: str | None = None
    """Either "json" or "string"."""

    time_zone: str | None = None
    """Time zone used when `cell_format` is "string"."""

    user_locale: str | None = None
    """Locale used when `cell_format` is "string"."""

    @classmethod
    def coerce(cls, params: "QueryParams | dict[str, object] | None") -> "QueryParams":
        """Accept an instance, a mapping of options, or nothing."""
        if params is None:
            return cls()
        if isinstance(params, cls):
            return params
        return cls.model_validate(params)
