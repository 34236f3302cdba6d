"""Airtable record store using pyairtable.

pyairtable is synchronous, so every request runs in a worker thread to keep
the event loop free while the batch dispatcher has several calls in flight.
"""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar, TypeVar

from airtable_plus.errors import AirtablePlusError, ErrorKind
from airtable_plus.models.params import QueryParams, SortDirection
from airtable_plus.models.records import Fields, RecordDict, RecordUpdate

if TYPE_CHECKING:
    from pyairtable import Table

try:
    import requests
    from pyairtable import Api
except ImportError as e:
    _msg = "pyairtable is required for Airtable support. Install with: uv add pyairtable"
    raise ImportError(_msg) from e

T = TypeVar("T")


def _error_kind(error: Exception) -> ErrorKind:
    if isinstance(error, requests.HTTPError) and error.response is not None:
        status = error.response.status_code
        if status == 404:
            return ErrorKind.NOT_FOUND
        if status in (401, 403):
            return ErrorKind.CONNECTION
    if isinstance(error, requests.ConnectionError | requests.Timeout):
        return ErrorKind.CONNECTION
    return ErrorKind.REMOTE


async def _call(action: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking pyairtable call off the event loop."""
    try:
        return await asyncio.to_thread(fn, *args, **kwargs)
    except Exception as e:
        msg = f"Failed to {action}: {e}"
        raise AirtablePlusError(msg, kind=_error_kind(e), source=e) from e


def query_options(params: QueryParams) -> dict[str, Any]:
    """Translate query parameters into `Table.all` keyword arguments."""
    options: dict[str, Any] = {}
    if params.filter_by_formula:
        options["formula"] = params.filter_by_formula
    if params.max_records is not None:
        options["max_records"] = params.max_records
    if params.page_size is not None:
        options["page_size"] = params.page_size
    if params.sort:
        options["sort"] = [
            f"-{s.field}" if s.direction is SortDirection.DESC else s.field for s in params.sort
        ]
    if params.view:
        options["view"] = params.view
    if params.fields is not None:
        options["fields"] = list(params.fields)
    if params.cell_format:
        options["cell_format"] = params.cell_format
    if params.time_zone:
        options["time_zone"] = params.time_zone
    if params.user_locale:
        options["user_locale"] = params.user_locale
    return options


class AirtableRecord:
    """Record returned in rich mode, bound to the table it came from."""

    __slots__: ClassVar[tuple[str, str, str]] = ("_connection", "_raw", "_table")

    def __init__(self, connection: "AirtableConnection", table: str, raw: Mapping[str, Any]) -> None:
        self._connection = connection
        self._table = table
        self._raw: RecordDict = {
            "id": raw["id"],
            "fields": dict(raw.get("fields", {})),
            "createdTime": raw.get("createdTime"),
        }

    @property
    def id(self) -> str:
        return self._raw["id"]

    @property
    def raw(self) -> RecordDict:
        return {**self._raw, "fields": dict(self._raw["fields"])}

    @property
    def fields(self) -> Fields:
        return self._raw["fields"]

    @property
    def table(self) -> str:
        return self._table

    def get(self, field: str, default: Any = None) -> Any:
        return self._raw["fields"].get(field, default)

    def get_id(self) -> str:
        return self.id

    async def update(self, fields: Mapping[str, Any], *, typecast: bool = False) -> "AirtableRecord":
        """Write `fields` to this record, keeping unspecified columns."""
        return await self._connection.update(self._table, self.id, fields, typecast=typecast)

    async def replace(self, fields: Mapping[str, Any], *, typecast: bool = False) -> "AirtableRecord":
        """Overwrite this record, clearing unspecified columns."""
        return await self._connection.update(
            self._table, self.id, fields, replace=True, typecast=typecast
        )

    async def destroy(self) -> str:
        """Delete this record and return its id."""
        [deleted] = await self._connection.destroy(self._table, [self.id])
        return deleted

    def __repr__(self) -> str:
        return f"AirtableRecord(id={self.id!r}, table={self._table!r})"


class AirtableCursor:
    """Lazy selection over one table."""

    __slots__: ClassVar[tuple[str, str, str]] = ("_connection", "_options", "_table")

    def __init__(self, connection: "AirtableConnection", table: str, params: QueryParams) -> None:
        self._connection = connection
        self._table = table
        self._options = query_options(params)

    async def all(self) -> list[AirtableRecord]:
        """Fetch every page of the selection."""
        table = self._connection.table(self._table)
        records = await _call(f"read from {self._table}", table.all, **self._options)
        return self._connection.wrap(self._table, records)


class AirtableConnection:
    """Connection to one base with one API key."""

    __slots__: ClassVar[tuple[str, str]] = ("_api", "_base_id")

    def __init__(self, api: Api, base_id: str) -> None:
        self._api = api
        self._base_id = base_id

    @property
    def base_id(self) -> str:
        return self._base_id

    def table(self, name: str) -> "Table":
        return self._api.table(self._base_id, name)

    def wrap(self, table: str, records: Sequence[Mapping[str, Any]]) -> list[AirtableRecord]:
        return [AirtableRecord(self, table, raw) for raw in records]

    async def create(
        self,
        table: str,
        records: Sequence[Mapping[str, Any]],
        *,
        typecast: bool = False,
    ) -> list[AirtableRecord]:
        """Create records in `table`."""
        created = await _call(
            f"create records in {table}",
            self.table(table).batch_create,
            [dict(fields) for fields in records],
            typecast=typecast,
        )
        return self.wrap(table, created)

    async def update(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> AirtableRecord:
        """Update one record."""
        updated = await _call(
            f"update record {record_id} in {table}",
            self.table(table).update,
            record_id,
            dict(fields),
            replace=replace,
            typecast=typecast,
        )
        return AirtableRecord(self, table, updated)

    async def batch_update(
        self,
        table: str,
        records: Sequence[RecordUpdate],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> list[AirtableRecord]:
        """Update several records."""
        updated = await _call(
            f"update records in {table}",
            self.table(table).batch_update,
            [{"id": r["id"], "fields": dict(r["fields"])} for r in records],
            replace=replace,
            typecast=typecast,
        )
        return self.wrap(table, updated)

    async def destroy(self, table: str, record_ids: Sequence[str]) -> list[str]:
        """Delete records by id."""
        deleted = await _call(
            f"delete records from {table}",
            self.table(table).batch_delete,
            list(record_ids),
        )
        return [item["id"] for item in deleted]

    async def find(self, table: str, record_id: str) -> AirtableRecord:
        """Fetch one record by id."""
        record = await _call(f"find record {record_id} in {table}", self.table(table).get, record_id)
        return AirtableRecord(self, table, record)

    def select(self, table: str, params: QueryParams) -> AirtableCursor:
        return AirtableCursor(self, table, params)


class AirtableStore:
    """Record store for the Airtable REST API.

    Implements RecordStore; connections are created per (api key, base id).
    """

    __slots__: ClassVar[tuple[str, str, str]] = ("_endpoint_url", "_retry_strategy", "_timeout")

    def __init__(
        self,
        *,
        timeout: tuple[int, int] | None = None,
        retry_strategy: bool = False,
        endpoint_url: str = "https://api.airtable.com",
    ) -> None:
        self._timeout = timeout
        self._retry_strategy = retry_strategy
        self._endpoint_url = endpoint_url

    async def connect(self, api_key: str, base_id: str) -> AirtableConnection:
        """Create an API session for `api_key` bound to `base_id`."""
        try:
            api = Api(
                api_key,
                timeout=self._timeout,
                retry_strategy=self._retry_strategy,
                endpoint_url=self._endpoint_url,
            )
        except Exception as e:
            msg = f"Failed to connect to Airtable: {e}"
            raise AirtablePlusError(msg, kind=ErrorKind.CONNECTION, source=e) from e

        return AirtableConnection(api, base_id)


Provider = AirtableStore
