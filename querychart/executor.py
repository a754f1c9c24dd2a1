from __future__ import annotations

import asyncio
from typing import Optional

import asyncpg

from .config import PostgresConfig
from .errors import QueryExecutionError
from .logging_utils import get_logger
from .models import FieldInfo, QueryResult

logger = get_logger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class QueryExecutor:
    """Runs SQL text as-is and captures rows plus field descriptors.

    Shared by the natural-language pipeline, the raw SQL passthrough and the
    canned insight queries.
    """

    def __init__(self, cfg: PostgresConfig):
        self._cfg = cfg

    async def execute(self, conn: asyncpg.Connection, sql: str) -> QueryResult:
        logger.info("execute_sql", sql=sql)
        try:
            result = await self._run(conn, sql, self._timeout_s())
        except asyncio.TimeoutError as exc:
            logger.warning("query_execution_timeout", sql=sql)
            raise QueryExecutionError("Query execution timed out") from exc
        except _DB_ERRORS as exc:
            logger.warning("query_execution_failed", sql=sql, error=str(exc))
            raise QueryExecutionError(str(exc)) from exc
        logger.info("query_executed", rows=len(result.rows), fields=len(result.fields))
        return result

    async def _run(self, conn: asyncpg.Connection, sql: str, timeout_s: Optional[float]) -> QueryResult:
        # A prepared statement reports its columns even when no row comes back.
        stmt = await conn.prepare(sql)
        fields = [FieldInfo(attr.name, attr.type.name) for attr in stmt.get_attributes()]
        if timeout_s is None:
            records = await stmt.fetch()
        else:
            records = await asyncio.wait_for(stmt.fetch(), timeout=timeout_s)
        return QueryResult(rows=[dict(record) for record in records], fields=fields)

    def _timeout_s(self) -> Optional[float]:
        if self._cfg.statement_timeout_ms is None:
            return None
        return self._cfg.statement_timeout_ms / 1000


__all__ = ["QueryExecutor"]
