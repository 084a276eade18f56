# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""PostgreSQL async adapter using psycopg3 with connection pooling.

Uses connection-per-request model: acquire() gets from pool,
release() returns to pool. Each request gets isolated transaction.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from .base import DbAdapter, ExecResult

if TYPE_CHECKING:
    from collections.abc import Sequence


class PostgresAdapter(DbAdapter):
    """PostgreSQL async adapter with connection pooling.

    Converts `?` placeholders to `%s`. Pooled connections are switched to
    autocommit; begin() opens an explicit transaction.

    Pool is initialized lazily on first acquire().
    """

    flavour = "postgresql"
    placeholder = "%s"

    def __init__(self, dsn: str, pool_size: int = 10, connect_timeout: float = 10.0):
        self.dsn = dsn
        self.pool_size = pool_size
        self.connect_timeout = connect_timeout
        self._pool: Any = None

        # Verify psycopg is available at init time
        try:
            import psycopg  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "PostgreSQL support requires psycopg. "
                "Install with: pip install tablebase[postgresql]"
            ) from e

    async def _ensure_pool(self) -> None:
        """Initialize connection pool if not already open."""
        if self._pool is not None:
            return

        from psycopg_pool import AsyncConnectionPool

        async def configure(conn):
            await conn.set_autocommit(True)

        self._pool = AsyncConnectionPool(
            self.dsn,
            min_size=1,
            max_size=self.pool_size,
            open=False,
            configure=configure,
        )
        try:
            await asyncio.wait_for(
                self._pool.open(wait=True, timeout=self.connect_timeout),
                timeout=self.connect_timeout + 1,
            )
        except asyncio.TimeoutError:
            await self._pool.close()
            self._pool = None
            raise TimeoutError(
                f"PostgreSQL connection timed out after {self.connect_timeout}s. "
                "Check credentials and server availability."
            ) from None
        except Exception as e:
            await self._pool.close()
            self._pool = None
            raise ConnectionError(f"PostgreSQL connection failed: {e}") from e

    async def acquire(self) -> Any:
        """Acquire connection from pool."""
        await self._ensure_pool()
        return await self._pool.getconn()

    async def release(self, conn: Any) -> None:
        """Return connection to pool."""
        if self._pool:
            await self._pool.putconn(conn)

    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    async def begin(self, conn: Any) -> None:
        """Start a transaction on connection."""
        await conn.execute("BEGIN")

    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        await conn.execute("COMMIT")

    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        await conn.execute("ROLLBACK")

    async def execute(
        self, conn: Any, query: str, values: Sequence[Any] | None = None
    ) -> ExecResult:
        """Execute query, return rows (if any) and affected row count."""
        from psycopg.rows import dict_row

        args = list(values) if values else None
        query = self.convert_placeholders(query, has_values=args is not None)
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, args)
            if cur.description is None:
                return ExecResult(affected_rows=cur.rowcount)
            return ExecResult(rows=await cur.fetchall())
