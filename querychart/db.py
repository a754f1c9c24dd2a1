from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import asyncpg

from .config import PostgresConfig
from .errors import DataSourceError

_CONNECT_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class Database:
    def __init__(self, cfg: PostgresConfig):
        self._cfg = cfg
        self._pool: asyncpg.pool.Pool | None = None

    async def connect(self) -> None:
        if self._pool is None:
            if self._cfg.dsn:
                params = {"dsn": self._cfg.dsn}
            else:
                params = {
                    "host": self._cfg.host,
                    "port": self._cfg.port,
                    "user": self._cfg.user,
                    "password": self._cfg.password or None,
                    "database": self._cfg.database,
                }
            self._pool = await asyncpg.create_pool(
                min_size=self._cfg.min_pool_size,
                max_size=self._cfg.max_pool_size,
                **params,
            )

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def acquire(self) -> asyncpg.Connection:
        if self._pool is None:
            await self.connect()
        assert self._pool is not None
        return await self._pool.acquire()

    async def release(self, conn: asyncpg.Connection) -> None:
        if self._pool is None:
            return
        await self._pool.release(conn)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a pooled connection for one database call."""
        try:
            conn = await self.acquire()
        except _CONNECT_ERRORS as exc:
            raise DataSourceError(f"Database unavailable: {exc}") from exc
        try:
            yield conn
        finally:
            await self.release(conn)


__all__ = ["Database"]
