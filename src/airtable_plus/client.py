"""High-level record operations over a record store.

`AirtablePlus` holds instance defaults and lets every call override any of
them for that call only. Multi-record writes and deletes are split into
batches of at most ten, sent with bounded concurrency through a shared
rate limiter, and flattened back in input order.

Bulk operations are not transactional. When one batch fails the call
raises, but batches that already reached the store stay applied, and the
read-then-write helpers (`update_where`, `replace_where`, `delete_where`,
`upsert`) do not guard against concurrent edits between the two steps.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, NamedTuple, TypeAlias

from airtable_plus.batching import chunk, collapse, dispatch, is_scalar
from airtable_plus.casing import to_camel_case
from airtable_plus.config import ConfigOverride, ConnectionPool, merge_config
from airtable_plus.errors import AirtablePlusError, ErrorKind
from airtable_plus.formulas import match_formula
from airtable_plus.models.config import Config, KeyCasing, ResultShape, TableRef
from airtable_plus.models.params import QueryParams
from airtable_plus.models.records import RecordUpdate, deleted_record
from airtable_plus.protocols import Connection, RecordStore, RichRecord
from airtable_plus.providers.airtable import AirtableStore
from airtable_plus.settings import environment_defaults
from airtable_plus.throttle import RateLimiter

logger = logging.getLogger(__name__)

Query: TypeAlias = QueryParams | Mapping[str, Any] | str


class _Call(NamedTuple):
    """Everything one operation needs once its config is resolved."""

    config: Config
    connection: Connection
    table: str


class AirtablePlus:
    """Convenience client for reading and writing table records.

    Defaults for `api_key`, `base_id` and `table_name` come from the
    `AIRTABLE_API_KEY`, `AIRTABLE_BASE_ID` and `AIRTABLE_TABLE_NAME`
    environment variables when not given.

    Example:
        client = AirtablePlus({"base_id": "appXXX", "table_name": "Table 1"})
        rows = await client.read({"filterByFormula": 'Status = "Open"'})
        row = await client.create({"Name": "foo"}, {"typecast": True})
    """

    __slots__ = ("_config", "_connections", "_throttle")

    def __init__(
        self,
        config: ConfigOverride | None = None,
        *,
        store: RecordStore | None = None,
        connections: ConnectionPool | None = None,
        throttle: RateLimiter | None = None,
    ) -> None:
        if isinstance(config, Config):
            self._config = config
        else:
            self._config = merge_config(Config.model_validate(environment_defaults()), config)
        if connections is None:
            connections = ConnectionPool(store if store is not None else AirtableStore())
        self._connections = connections
        self._throttle = throttle if throttle is not None else RateLimiter()

    @property
    def config(self) -> Config:
        """Instance defaults."""
        return self._config

    def use(self, base_id: str, config: ConfigOverride | None = None) -> "AirtablePlus":
        """Return a client for another base, sharing connections and rate limit."""
        cfg = merge_config(merge_config(self._config, config), {"base_id": base_id})
        return AirtablePlus(cfg, connections=self._connections, throttle=self._throttle)

    async def create(self, data: Any, config: ConfigOverride | None = None) -> Any:
        """Create one record from a field mapping, or many from a list.

        Returns the created record for a single mapping and a list of
        records for a list.
        """
        if not data:
            msg = "No data to create"
            raise AirtablePlusError(msg, kind=ErrorKind.EMPTY_INPUT)
        call = await self._prepare(merge_config(self._config, config))
        return await self._create(call, data)

    async def read(self, params: Query | None = None, config: ConfigOverride | None = None) -> list[Any]:
        """Read every record matching `params` across all pages.

        `params` is either a table name or query options such as
        `filter_by_formula`, `max_records`, `page_size`, `sort`, `view`,
        `fields`, `cell_format`, `time_zone` and `user_locale`.
        """
        cfg = merge_config(self._config, config)
        if isinstance(params, str):
            cfg = merge_config(cfg, params)
            params = None
        call = await self._prepare(cfg)
        records = await self._select(call, QueryParams.coerce(params))
        return self._normalize(cfg, records)

    async def find(self, record_id: str, config: ConfigOverride | None = None) -> Any:
        """Fetch a single record by id."""
        if not record_id:
            msg = "No record id given"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        call = await self._prepare(merge_config(self._config, config))
        record = await self._throttle.schedule(lambda: call.connection.find(call.table, record_id))
        return self._present(call.config, [record])[0]

    async def update(
        self,
        target: str | RecordUpdate | Sequence[RecordUpdate],
        fields: Mapping[str, Any] | None = None,
        config: ConfigOverride | None = None,
    ) -> Any:
        """Update one record by id or `{"id", "fields"}` item, or a list of items.

        Columns left out of `fields` keep their values.
        """
        call = await self._prepare(merge_config(self._config, config))
        return await self._write(call, target, fields, replace=False)

    async def update_row(
        self,
        record_id: str,
        fields: Mapping[str, Any],
        config: ConfigOverride | None = None,
    ) -> Any:
        """Update a single record. Alias of `update`."""
        return await self.update(record_id, fields, config)

    async def update_where(
        self,
        where: str,
        fields: Mapping[str, Any],
        config: ConfigOverride | None = None,
    ) -> list[Any]:
        """Apply `fields` to every record matching the formula `where`."""
        call = await self._prepare(merge_config(self._config, config))
        ids = await self._matching_ids(call, where)
        return await self._write_batch(call, [{"id": i, "fields": dict(fields)} for i in ids], replace=False)

    async def replace(
        self,
        target: str | RecordUpdate | Sequence[RecordUpdate],
        fields: Mapping[str, Any] | None = None,
        config: ConfigOverride | None = None,
    ) -> Any:
        """Overwrite one record by id or `{"id", "fields"}` item, or a list of items.

        Columns left out of `fields` are cleared.
        """
        call = await self._prepare(merge_config(self._config, config))
        return await self._write(call, target, fields, replace=True)

    async def replace_row(
        self,
        record_id: str,
        fields: Mapping[str, Any],
        config: ConfigOverride | None = None,
    ) -> Any:
        """Overwrite a single record. Alias of `replace`."""
        return await self.replace(record_id, fields, config)

    async def replace_where(
        self,
        where: str,
        fields: Mapping[str, Any],
        config: ConfigOverride | None = None,
    ) -> list[Any]:
        """Overwrite every record matching the formula `where` with `fields`."""
        call = await self._prepare(merge_config(self._config, config))
        ids = await self._matching_ids(call, where)
        return await self._write_batch(call, [{"id": i, "fields": dict(fields)} for i in ids], replace=True)

    async def delete(self, target: str | Sequence[str], config: ConfigOverride | None = None) -> Any:
        """Delete one record by id, or several from a list of ids."""
        if target is None or (isinstance(target, str) and not target):
            msg = "No record id given"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        call = await self._prepare(merge_config(self._config, config))
        return await self._delete(call, target)

    async def delete_where(self, where: str, config: ConfigOverride | None = None) -> list[Any]:
        """Delete every record matching the formula `where`."""
        call = await self._prepare(merge_config(self._config, config))
        ids = await self._matching_ids(call, where)
        return await self._delete(call, ids)

    async def truncate(self, config: ConfigOverride | None = None) -> list[Any]:
        """Delete every record in the table."""
        call = await self._prepare(merge_config(self._config, config))
        ids = await self._matching_ids(call, None)
        return await self._delete(call, ids)

    async def append_table(
        self,
        source: TableRef | Mapping[str, Any] | str,
        dest: TableRef | Mapping[str, Any] | str,
    ) -> list[Any]:
        """Copy the fields of records from `source` into `dest`.

        `source` may restrict the copy with `where` and project it with
        `fields`. Column names are copied as stored, whatever the key casing.
        """
        src = TableRef.coerce(source)
        dst = TableRef.coerce(dest)
        dest_call = await self._prepare(merge_config(self._config, dst.overrides()))

        src_config = merge_config(self._config, {**src.overrides(), "key_casing": KeyCasing.AS_IS})
        rows = await self.read(QueryParams(filter_by_formula=src.where, fields=src.fields), src_config)
        records = [_fields_of(row) for row in rows]
        if not records:
            logger.debug("Nothing to copy into %s", dest_call.table)
            return []
        logger.debug("Copying %d records into %s", len(records), dest_call.table)
        return await self._create(dest_call, records)

    async def overwrite_table(
        self,
        source: TableRef | Mapping[str, Any] | str,
        dest: TableRef | Mapping[str, Any] | str,
    ) -> list[Any]:
        """Empty `dest`, then copy `source` into it."""
        dst = TableRef.coerce(dest)
        await self.truncate(dst.overrides())
        return await self.append_table(source, dst)

    async def upsert(self, key: str, data: Mapping[str, Any], config: ConfigOverride | None = None) -> Any:
        """Create `data` unless records with the same `key` value exist.

        Every matching record is updated with `data`, and the list of updated
        records is returned. Otherwise the single created record is returned.
        """
        if not key or not data:
            msg = "Key and data are required"
            raise AirtablePlusError(msg, kind=ErrorKind.MISSING_ARGUMENTS)
        if key not in data:
            msg = f"Data has no value for key {key!r}"
            raise AirtablePlusError(msg, kind=ErrorKind.MISSING_ARGUMENTS)

        call = await self._prepare(merge_config(self._config, config))
        ids = await self._matching_ids(call, match_formula(key, data[key]))
        if not ids:
            return await self._create(call, dict(data))
        logger.debug("Upsert on %s matched %d records", key, len(ids))
        return await self._write_batch(call, [{"id": i, "fields": dict(data)} for i in ids], replace=False)

    async def _prepare(self, config: Config) -> _Call:
        connection = await self._connections.resolve(config)
        return _Call(config, connection, config.table_name or "")

    async def _batch(
        self,
        call: _Call,
        data: Any,
        worker: Callable[[Sequence[Any]], Awaitable[Sequence[Any]]],
    ) -> Any:
        results = await dispatch(chunk(data), worker, call.config.concurrency)
        return collapse(results, is_scalar(data))

    async def _create(self, call: _Call, data: Any) -> Any:
        async def create_batch(items: Sequence[Mapping[str, Any]]) -> list[Any]:
            records = await self._throttle.schedule(
                lambda: call.connection.create(call.table, items, typecast=call.config.typecast)
            )
            return self._present(call.config, records)

        return await self._batch(call, data, create_batch)

    async def _write(
        self,
        call: _Call,
        target: str | RecordUpdate | Sequence[RecordUpdate],
        fields: Mapping[str, Any] | None,
        *,
        replace: bool,
    ) -> Any:
        if not isinstance(target, str):
            if fields is not None:
                msg = "fields cannot be combined with a record or a list of records"
                raise TypeError(msg)
            if not isinstance(target, Mapping):
                return await self._write_batch(call, target, replace=replace)
            # A single {"id", "fields"} item is written like an id and fields.
            target, fields = target.get("id") or "", target.get("fields")

        if not target:
            msg = "No record id given"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        if not fields:
            msg = f"No fields given for record {target}"
            raise AirtablePlusError(msg, kind=ErrorKind.EMPTY_INPUT)
        record = await self._throttle.schedule(
            lambda: call.connection.update(
                call.table, target, fields, replace=replace, typecast=call.config.typecast
            )
        )
        return self._present(call.config, [record])[0]

    async def _write_batch(self, call: _Call, records: Sequence[RecordUpdate], *, replace: bool) -> list[Any]:
        async def write_batch(items: Sequence[RecordUpdate]) -> list[Any]:
            written = await self._throttle.schedule(
                lambda: call.connection.batch_update(
                    call.table, items, replace=replace, typecast=call.config.typecast
                )
            )
            return self._present(call.config, written)

        return await self._batch(call, list(records), write_batch)

    async def _delete(self, call: _Call, target: str | Sequence[str]) -> Any:
        async def delete_batch(ids: Sequence[str]) -> list[Any]:
            deleted = await self._throttle.schedule(lambda: call.connection.destroy(call.table, ids))
            return [deleted_record(record_id) for record_id in deleted]

        return await self._batch(call, target, delete_batch)

    async def _select(self, call: _Call, params: QueryParams) -> list[RichRecord]:
        return await self._throttle.schedule(lambda: call.connection.select(call.table, params).all())

    async def _matching_ids(self, call: _Call, where: str | None) -> list[str]:
        records = await self._select(call, QueryParams(filter_by_formula=where or None))
        return [record.id for record in records]

    @staticmethod
    def _present(config: Config, records: Sequence[RichRecord]) -> list[Any]:
        if config.result_shape is ResultShape.RICH:
            return list(records)
        return [record.raw for record in records]

    def _normalize(self, config: Config, records: Sequence[RichRecord]) -> list[Any]:
        rows = self._present(config, records)
        if config.key_casing is KeyCasing.CAMEL and config.result_shape is ResultShape.PLAIN:
            rows = to_camel_case(rows)
        if config.transform is not None:
            transformed = [row for row in (config.transform(_copy(r)) for r in rows) if row]
            # Records stay as read when the transform returns nothing for all of them.
            if transformed:
                rows = transformed
        return [row for row in rows if row]


def _copy(row: Any) -> Any:
    return dict(row) if isinstance(row, dict) else row


def _fields_of(row: Any) -> dict[str, Any]:
    if isinstance(row, Mapping):
        return dict(row.get("fields") or {})
    return dict(row.fields)
