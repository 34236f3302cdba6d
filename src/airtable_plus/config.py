"""Per-call configuration merge and connection resolution."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, TypeAlias

from airtable_plus.errors import AirtablePlusError, ErrorKind
from airtable_plus.models.config import Config
from airtable_plus.protocols import Connection, RecordStore

logger = logging.getLogger(__name__)

ConfigOverride: TypeAlias = Config | Mapping[str, Any] | str


def merge_config(defaults: Config, override: ConfigOverride | None = None) -> Config:
    """Resolve the effective configuration for a single call.

    Without an override the shared defaults are returned as is; callers
    cannot mutate them since `Config` is frozen. A string is shorthand for
    `{"table_name": override}`. Mappings are merged key by key over a copy
    of the defaults, and a non-callable `transform` ends up as None.
    """
    if override is None:
        return defaults
    if isinstance(override, str):
        return defaults.model_copy(update={"table_name": override})
    if isinstance(override, Config):
        override = {name: getattr(override, name) for name in override.model_fields_set}
    merged: dict[str, Any] = dict(defaults)
    merged.update(override)
    return Config.model_validate(merged)


class ConnectionPool:
    """Connections keyed by (api key, base id).

    Every call resolves its own connection from its effective config, so a
    rotated key or a different base takes effect on the very next call and
    concurrent calls with different credentials never share a handle.
    """

    __slots__ = ("_connections", "_lock", "_store")

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._connections: dict[tuple[str, str], Connection] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    async def resolve(self, config: Config) -> Connection:
        """Return the connection for `config`, connecting on first use."""
        if not config.api_key:
            msg = "No API key configured"
            raise AirtablePlusError(msg, kind=ErrorKind.INVALID_CONFIGURATION)
        if not config.base_id:
            msg = "No base id configured"
            raise AirtablePlusError(msg, kind=ErrorKind.INVALID_CONFIGURATION)
        if not config.table_name:
            msg = "No table name configured"
            raise AirtablePlusError(msg, kind=ErrorKind.INVALID_CONFIGURATION)

        key = (config.api_key, config.base_id)
        async with self._lock:
            connection = self._connections.get(key)
            if connection is None:
                logger.debug("Connecting to base %s", config.base_id)
                connection = await self._store.connect(config.api_key, config.base_id)
                self._connections[key] = connection
        return connection
