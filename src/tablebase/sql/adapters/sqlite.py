# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite with per-request connections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiosqlite

from .base import DbAdapter, ExecResult

if TYPE_CHECKING:
    from collections.abc import Sequence


class SqliteAdapter(DbAdapter):
    """SQLite async adapter with per-request connections.

    Uses `?` placeholders natively. Each acquire() opens a new connection
    in autocommit mode, release() closes it. Transactions are opened with
    an explicit BEGIN.

    Note: every acquire() on ":memory:" opens a separate empty database.
    """

    flavour = "sqlite"
    placeholder = "?"

    def __init__(self, db_path: str):
        self.db_path = db_path or ":memory:"

    async def acquire(self) -> aiosqlite.Connection:
        """Open new connection for request."""
        return await aiosqlite.connect(self.db_path, isolation_level=None)

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Close connection."""
        await conn.close()

    async def shutdown(self) -> None:
        """No-op for SQLite (no pool to close)."""
        pass

    async def begin(self, conn: aiosqlite.Connection) -> None:
        """Start a transaction on connection."""
        await conn.execute("BEGIN")

    async def commit(self, conn: aiosqlite.Connection) -> None:
        """Commit transaction on connection."""
        await conn.commit()

    async def rollback(self, conn: aiosqlite.Connection) -> None:
        """Rollback transaction on connection."""
        await conn.rollback()

    async def execute(
        self, conn: aiosqlite.Connection, query: str, values: Sequence[Any] | None = None
    ) -> ExecResult:
        """Execute query, return rows (if any) and affected row count."""
        async with conn.execute(query, list(values or ())) as cursor:
            if cursor.description is None:
                return ExecResult(affected_rows=cursor.rowcount, insert_id=cursor.lastrowid)
            rows = await cursor.fetchall()
            cols = [c[0] for c in cursor.description]
            return ExecResult(rows=[dict(zip(cols, row, strict=True)) for row in rows])
