"""Core protocols for record stores."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from airtable_plus.models.params import QueryParams
from airtable_plus.models.records import Fields, RecordDict, RecordUpdate


@runtime_checkable
class RichRecord(Protocol):
    """A store-native record bound to the table it was read from."""

    @property
    def id(self) -> str: ...

    @property
    def raw(self) -> RecordDict:
        """Plain projection: id, fields and createdTime."""
        ...

    @property
    def fields(self) -> Fields: ...

    def get(self, field: str, default: Any = None) -> Any: ...


@runtime_checkable
class Cursor(Protocol):
    """A paginated selection over a table."""

    async def all(self) -> list[RichRecord]:
        """Drain every page and return the concatenated records."""
        ...


@runtime_checkable
class Connection(Protocol):
    """Handle bound to one (api key, base id) pair."""

    @property
    def base_id(self) -> str: ...

    async def create(
        self,
        table: str,
        records: Sequence[Mapping[str, Any]],
        *,
        typecast: bool = False,
    ) -> list[RichRecord]:
        """Create one record per field mapping, at most 10 per call."""
        ...

    async def update(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> RichRecord:
        """Update a single record. `replace` clears unspecified fields."""
        ...

    async def batch_update(
        self,
        table: str,
        records: Sequence[RecordUpdate],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> list[RichRecord]:
        """Update up to 10 records in a single request."""
        ...

    async def destroy(self, table: str, record_ids: Sequence[str]) -> list[str]:
        """Delete records and return the ids the store reports as deleted."""
        ...

    async def find(self, table: str, record_id: str) -> RichRecord: ...

    def select(self, table: str, params: QueryParams) -> Cursor: ...


@runtime_checkable
class RecordStore(Protocol):
    """Factory for connections to the remote service."""

    async def connect(self, api_key: str, base_id: str) -> Connection:
        """Establish a connection for the given credential and base."""
        ...
