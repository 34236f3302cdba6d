"""Shared fixtures: an in-memory record store and a client bound to it."""

import asyncio
import itertools
import re
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from airtable_plus import AirtablePlus, RateLimiter
from airtable_plus.batching import MAX_BATCH_SIZE
from airtable_plus.errors import AirtablePlusError, ErrorKind
from airtable_plus.models import QueryParams, RecordDict, RecordUpdate

_MATCH = re.compile(r"^\{?(?P<column>[^{}]+?)\}? = (?P<value>.+)$")


def _literal(text: str) -> Any:
    if text.startswith('"') and text.endswith('"'):
        return text[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    if text in ("TRUE", "FALSE"):
        return text == "TRUE"
    if text == "BLANK()":
        return None
    return float(text) if "." in text else int(text)


def _matches(formula: str | None, fields: Mapping[str, Any]) -> bool:
    if not formula:
        return True
    match = _MATCH.match(formula)
    if match is None:
        msg = f"Unsupported formula {formula!r}"
        raise AirtablePlusError(msg, kind=ErrorKind.REMOTE)
    return fields.get(match["column"]) == _literal(match["value"])


class FakeRecord:
    """RichRecord over a snapshot of a stored record."""

    def __init__(self, table: str, raw: RecordDict) -> None:
        self.table = table
        self._raw = raw

    @property
    def id(self) -> str:
        return self._raw["id"]

    @property
    def raw(self) -> RecordDict:
        return {**self._raw, "fields": dict(self._raw["fields"])}

    @property
    def fields(self) -> dict[str, Any]:
        return self._raw["fields"]

    def get(self, field: str, default: Any = None) -> Any:
        return self._raw["fields"].get(field, default)


class FakeCursor:
    def __init__(self, connection: "FakeConnection", table: str, params: QueryParams) -> None:
        self._connection = connection
        self._table = table
        self._params = params

    async def all(self) -> list[FakeRecord]:
        return await self._connection.select_all(self._table, self._params)


class FakeConnection:
    """Connection to one in-memory base."""

    def __init__(self, store: "FakeStore", api_key: str, base_id: str) -> None:
        self.store = store
        self.api_key = api_key
        self._base_id = base_id

    @property
    def base_id(self) -> str:
        return self._base_id

    def _rows(self, table: str) -> dict[str, RecordDict]:
        if self._base_id not in self.store.bases:
            msg = f"Base {self._base_id} not found"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        return self.store.bases[self._base_id].setdefault(table, {})

    async def _enter(self, method: str, table: str, payload: Any) -> None:
        self.store.calls.append((method, table, payload))
        self.store.in_flight += 1
        self.store.max_in_flight = max(self.store.max_in_flight, self.store.in_flight)
        try:
            delay = self.store.delay(method, payload)
            await asyncio.sleep(delay)
            if self.store.fail is not None and self.store.fail(method, payload):
                msg = f"Injected failure in {method}"
                raise AirtablePlusError(msg, kind=ErrorKind.REMOTE)
        finally:
            self.store.in_flight -= 1

    def _check_batch(self, items: Sequence[Any]) -> None:
        if len(items) > MAX_BATCH_SIZE:
            msg = f"Batch of {len(items)} exceeds {MAX_BATCH_SIZE}"
            raise AirtablePlusError(msg, kind=ErrorKind.REMOTE)

    async def create(
        self, table: str, records: Sequence[Mapping[str, Any]], *, typecast: bool = False
    ) -> list[FakeRecord]:
        await self._enter("create", table, list(records))
        self._check_batch(records)
        rows = self._rows(table)
        created = []
        for fields in records:
            record_id = f"rec{next(self.store.ids):05d}"
            rows[record_id] = {"id": record_id, "fields": dict(fields), "createdTime": "2024-01-01T00:00:00.000Z"}
            created.append(FakeRecord(table, rows[record_id]))
        return created

    def _apply(self, table: str, record_id: str, fields: Mapping[str, Any], replace: bool) -> FakeRecord:
        rows = self._rows(table)
        if record_id not in rows:
            msg = f"Record {record_id} not found"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        current = rows[record_id]
        current["fields"] = dict(fields) if replace else {**current["fields"], **fields}
        return FakeRecord(table, current)

    async def update(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> FakeRecord:
        await self._enter("replace" if replace else "update", table, record_id)
        return self._apply(table, record_id, fields, replace)

    async def batch_update(
        self,
        table: str,
        records: Sequence[RecordUpdate],
        *,
        replace: bool = False,
        typecast: bool = False,
    ) -> list[FakeRecord]:
        await self._enter("batch_replace" if replace else "batch_update", table, [r["id"] for r in records])
        self._check_batch(records)
        return [self._apply(table, r["id"], r["fields"], replace) for r in records]

    async def destroy(self, table: str, record_ids: Sequence[str]) -> list[str]:
        await self._enter("destroy", table, list(record_ids))
        self._check_batch(record_ids)
        rows = self._rows(table)
        for record_id in record_ids:
            if record_id not in rows:
                msg = f"Record {record_id} not found"
                raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        for record_id in record_ids:
            del rows[record_id]
        return list(record_ids)

    async def find(self, table: str, record_id: str) -> FakeRecord:
        await self._enter("find", table, record_id)
        rows = self._rows(table)
        if record_id not in rows:
            msg = f"Record {record_id} not found"
            raise AirtablePlusError(msg, kind=ErrorKind.NOT_FOUND)
        return FakeRecord(table, rows[record_id])

    def select(self, table: str, params: QueryParams) -> FakeCursor:
        return FakeCursor(self, table, params)

    async def select_all(self, table: str, params: QueryParams) -> list[FakeRecord]:
        await self._enter("select", table, params)
        rows = [r for r in self._rows(table).values() if _matches(params.filter_by_formula, r["fields"])]
        if params.max_records is not None:
            rows = rows[: params.max_records]
        if params.fields is not None:
            rows = [{**r, "fields": {k: v for k, v in r["fields"].items() if k in params.fields}} for r in rows]
        return [FakeRecord(table, r) for r in rows]


class FakeStore:
    """In-memory RecordStore that records every call."""

    def __init__(self, bases: Sequence[str] = ("app1", "app2")) -> None:
        self.bases: dict[str, dict[str, dict[str, RecordDict]]] = {base: {} for base in bases}
        self.calls: list[tuple[str, str, Any]] = []
        self.connects: list[tuple[str, str]] = []
        self.ids = itertools.count(1)
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail: Any = None
        self.delay: Any = lambda method, payload: 0

    async def connect(self, api_key: str, base_id: str) -> FakeConnection:
        await asyncio.sleep(0)
        self.connects.append((api_key, base_id))
        return FakeConnection(self, api_key, base_id)

    def seed(self, table: str, rows: Sequence[Mapping[str, Any]], base_id: str = "app1") -> list[str]:
        ids = []
        for fields in rows:
            record_id = f"rec{next(self.ids):05d}"
            self.bases[base_id].setdefault(table, {})[record_id] = {
                "id": record_id,
                "fields": dict(fields),
                "createdTime": "2024-01-01T00:00:00.000Z",
            }
            ids.append(record_id)
        return ids

    def rows(self, table: str, base_id: str = "app1") -> list[RecordDict]:
        return list(self.bases[base_id].get(table, {}).values())

    def methods(self) -> list[str]:
        return [method for method, _, _ in self.calls]


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in ("AIRTABLE_API_KEY", "AIRTABLE_BASE_ID", "AIRTABLE_TABLE_NAME"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(store):
    return AirtablePlus(
        {"api_key": "key", "base_id": "app1", "table_name": "People"},
        store=store,
        throttle=RateLimiter(max_calls=1000, period=1.0),
    )


@pytest.fixture
def people(store):
    """Three seeded records in the People table."""
    return store.seed(
        "People",
        [
            {"First Name": "Ada", "last_name": "Lovelace", "Gender": "Female", "ID": "1"},
            {"First Name": "Alan", "last_name": "Turing", "Gender": "Male", "ID": "2"},
            {"First Name": "Grace", "last_name": "Hopper", "Gender": "Female", "ID": "3"},
        ],
    )
