"""Discovery of synced source tables by naming convention."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from crm_dashboard.config import DEFAULT_CREDENTIAL_COLUMN, DEFAULT_TABLE_PREFIX

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceTable:
    """A discovered table and the column names it declares."""

    name: str
    columns: frozenset[str]

    def has_column(self, name: str) -> bool:
        return name in self.columns


class TableDiscovery:
    """Enumerate tables and views whose name carries the sync prefix and that hold a credential column.

    Table names become part of generated SQL, so every candidate must match
    ``^<prefix>[A-Za-z0-9_]+$``; anything else is skipped.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        prefix: str = DEFAULT_TABLE_PREFIX,
        credential_column: str = DEFAULT_CREDENTIAL_COLUMN,
        schema: str | None = None,
        cache_ttl_seconds: float = 0.0,
    ):
        self._engine = engine
        self._prefix = prefix
        self._credential_column = credential_column
        self._schema = schema
        self._cache_ttl = cache_ttl_seconds
        self._cached: tuple[float, list[SourceTable]] | None = None
        self._pattern = re.compile(rf"^{re.escape(prefix)}[A-Za-z0-9_]+$")

    @property
    def credential_column(self) -> str:
        return self._credential_column

    def is_allowed(self, name: str) -> bool:
        return bool(self._pattern.fullmatch(name))

    async def discover(self) -> list[SourceTable]:
        """Return matching tables sorted by name; empty when none exist."""

        if self._cache_ttl and self._cached is not None:
            stored_at, tables = self._cached
            if time.monotonic() - stored_at < self._cache_ttl:
                return list(tables)

        async with self._engine.connect() as connection:
            tables = await connection.run_sync(self._inspect)

        if self._cache_ttl:
            self._cached = (time.monotonic(), tables)
        logger.debug("Discovered %d source tables", len(tables))
        return list(tables)

    def invalidate(self) -> None:
        self._cached = None

    def _inspect(self, connection: Connection) -> list[SourceTable]:
        inspector = inspect(connection)
        names = set(inspector.get_table_names(schema=self._schema))
        names.update(inspector.get_view_names(schema=self._schema))
        found: list[SourceTable] = []
        for name in sorted(names):
            if not name.startswith(self._prefix):
                continue
            if not self.is_allowed(name):
                logger.warning("Skipping table with unexpected name: %r", name)
                continue
            columns = frozenset(col["name"] for col in inspector.get_columns(name, schema=self._schema))
            if self._credential_column not in columns:
                continue
            found.append(SourceTable(name=name, columns=columns))
        return found


__all__ = ["SourceTable", "TableDiscovery"]
