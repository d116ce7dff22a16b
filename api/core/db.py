"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns one connection pool. The application creates a single
instance, connects it on startup and closes it on shutdown (see
`api/main.py`), and hands it to the repositories that need it.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

from typing import Any

import asyncpg

from . import settings


class DatabaseNotReadyError(RuntimeError):
    """Raised when a query is issued before `connect()` or after `close()`."""


class Database:
    def __init__(
        self,
        dsn: str | None = None,
        *,
        min_size: int | None = None,
        max_size: int | None = None,
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return None
        self._pool = await asyncpg.create_pool(
            dsn=self._dsn or settings.database_url(),
            min_size=self._min_size if self._min_size is not None else settings.pool_min_size(),
            max_size=self._max_size if self._max_size is not None else settings.pool_max_size(),
            command_timeout=30,
        )

    async def close(self) -> None:
        if self._pool is None:
            return None
        pool, self._pool = self._pool, None
        await pool.close()

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseNotReadyError("DB pool is not initialized. Call connect() on startup.")
        return self._pool

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self.pool().fetchrow(sql, *args)
        return dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self.pool().fetch(sql, *args)
        return [dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> str:
        """
        Run a statement (INSERT/UPDATE/DDL) and return the command status,
        e.g. "UPDATE 1".
        """
        return await self.pool().execute(sql, *args)


def affected_rows(status: str) -> int | None:
    """
    Parse the row count out of a command status tag ("UPDATE 3" -> 3).
    """
    tail = (status or "").rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else None
