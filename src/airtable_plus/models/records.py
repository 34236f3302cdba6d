"""Record shapes exchanged with the store.

Plain records mirror the Airtable REST payload: an `id`, a `fields` map
and the `createdTime` timestamp. Rich records are store objects and are
described by `airtable_plus.protocols.RichRecord`.
"""

from typing import Any, NotRequired, TypeAlias, TypedDict

# Column name to cell value.
Fields: TypeAlias = dict[str, Any]


class RecordDict(TypedDict):
    """Plain projection of a record."""

    id: str
    fields: Fields
    createdTime: str | None


class RecordUpdate(TypedDict):
    """One item of a batch update or replace."""

    id: str
    fields: Fields
    createdTime: NotRequired[str | None]


def deleted_record(record_id: str) -> RecordDict:
    """Plain stand-in returned for a record that no longer exists."""
    return {"id": record_id, "fields": {}, "createdTime": None}
