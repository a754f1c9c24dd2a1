from __future__ import annotations

from typing import Any, Dict, List

import asyncpg

from .config import CatalogConfig
from .errors import DataSourceError
from .logging_utils import get_logger
from .models import ColumnInfo, SchemaDescriptor

logger = get_logger(__name__)


_ALLOWED_COLUMNS_SQL = """
SELECT table_name, column_name, data_type
FROM information_schema.columns
WHERE table_schema = $1 AND table_name = ANY($2::text[])
ORDER BY table_name, ordinal_position
"""

_ALL_COLUMNS_SQL = """
SELECT table_name, column_name, data_type
FROM information_schema.columns
WHERE table_schema = $1
ORDER BY table_name, ordinal_position
"""

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class SchemaCatalog:
    """Reads column metadata for the allow-listed star schema tables.

    Nothing is cached: every call hits ``information_schema``.
    """

    def __init__(self, cfg: CatalogConfig):
        self._cfg = cfg

    @property
    def allowed_tables(self) -> List[str]:
        return list(self._cfg.allowed_tables)

    async def read(self, conn: asyncpg.Connection) -> SchemaDescriptor:
        rows = await self._fetch(conn, _ALLOWED_COLUMNS_SQL, self._cfg.namespace, self.allowed_tables)
        return self._group(rows)

    async def list_columns(self, conn: asyncpg.Connection) -> List[Dict[str, Any]]:
        rows = await self._fetch(conn, _ALL_COLUMNS_SQL, self._cfg.namespace)
        return [dict(row) for row in rows]

    def _group(self, rows) -> SchemaDescriptor:
        allowed = set(self._cfg.allowed_tables)
        # Every allow-listed table is present, even if the database lacks it.
        descriptor: SchemaDescriptor = {table: [] for table in sorted(allowed)}
        for row in rows:
            table = row["table_name"]
            if table not in allowed:
                continue
            descriptor[table].append(ColumnInfo(row["column_name"], row["data_type"]))
        missing = [table for table, columns in descriptor.items() if not columns]
        if missing:
            logger.warning("schema_tables_missing", tables=missing)
        logger.info("schema_catalog_read", tables=len(descriptor))
        return descriptor

    async def _fetch(self, conn: asyncpg.Connection, sql: str, *args: Any):
        try:
            return await conn.fetch(sql, *args)
        except _DB_ERRORS as exc:
            logger.warning("schema_catalog_failed", error=str(exc))
            raise DataSourceError(f"Schema metadata unavailable: {exc}") from exc


__all__ = ["SchemaCatalog"]
