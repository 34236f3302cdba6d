"""Convenience layer for Airtable records with batching and rate limiting."""

from airtable_plus.client import AirtablePlus
from airtable_plus.config import ConnectionPool, merge_config
from airtable_plus.errors import AirtablePlusError, ErrorKind
from airtable_plus.models import Config, KeyCasing, QueryParams, ResultShape, TableRef
from airtable_plus.protocols import Connection, Cursor, RecordStore, RichRecord
from airtable_plus.throttle import RateLimiter

__all__ = [
    "AirtablePlus",
    "AirtablePlusError",
    "Config",
    "Connection",
    "ConnectionPool",
    "Cursor",
    "ErrorKind",
    "KeyCasing",
    "QueryParams",
    "RateLimiter",
    "RecordStore",
    "ResultShape",
    "RichRecord",
    "TableRef",
    "merge_config",
]
