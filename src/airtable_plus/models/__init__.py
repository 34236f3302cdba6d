"""Models shared by the client, the stores and their callers.

`Config` and `TableRef` carry settings, `QueryParams` carries read
options, and the record shapes describe what flows in and out of a store.
"""

from airtable_plus.models.config import Config, KeyCasing, ResultShape, TableRef, Transform
from airtable_plus.models.params import QueryParams, SortDirection, SortField
from airtable_plus.models.records import Fields, RecordDict, RecordUpdate, deleted_record

__all__ = [
    # Configuration
    "Config",
    "KeyCasing",
    "ResultShape",
    "TableRef",
    "Transform",
    # Read options
    "QueryParams",
    "SortDirection",
    "SortField",
    # Record shapes
    "Fields",
    "RecordDict",
    "RecordUpdate",
    "deleted_record",
]
