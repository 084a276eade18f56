# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Database fixtures for SQL layer tests.

Two kinds of database:
- sqlite_db: real SQLite file in a temp directory (aiosqlite)
- recording_db: Database whose adapter records every call instead of
  talking to a server, for checking statement order and connection
  lifecycle (BEGIN / COMMIT / ROLLBACK / RELEASE).
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from tablebase.sql import Database, DbAdapter, ExecResult, Model, StatementFactory

USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT,
    email TEXT UNIQUE,
    status TEXT DEFAULT 'active',
    score INTEGER DEFAULT 0
)
"""


class RecordingAdapter(DbAdapter):
    """Adapter that records calls and fails on demand.

    Attributes:
        calls: "ACQUIRE", "BEGIN", "COMMIT", "ROLLBACK", "RELEASE" and the
            text of every executed statement, in order.
        fail_on: Call names or statement texts that raise RuntimeError.
        rows: Rows returned by every execute().
    """

    flavour = "mysql"

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.values: list[Any] = []
        self.fail_on: set[str] = set()
        self.rows: list[dict[str, Any]] = []
        self.affected_rows = 1

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    async def acquire(self) -> Any:
        self._record("ACQUIRE")
        return object()

    async def release(self, conn: Any) -> None:
        self._record("RELEASE")

    async def shutdown(self) -> None:
        pass

    async def execute(self, conn: Any, query: str, values: Any = None) -> ExecResult:
        self.values.append(values)
        self._record(query)
        return ExecResult(rows=list(self.rows), affected_rows=self.affected_rows)

    async def begin(self, conn: Any) -> None:
        self._record("BEGIN")

    async def commit(self, conn: Any) -> None:
        self._record("COMMIT")

    async def rollback(self, conn: Any) -> None:
        self._record("ROLLBACK")


class UsersModel(Model):
    """Users table used across tests."""

    name = "users"
    order = "id"


class TestModel(Model):
    """Model bound to table `test`, as used by statement snapshots."""

    __test__ = False
    name = "test"


@pytest.fixture
def recording_db() -> Database:
    """Database backed by a RecordingAdapter (mysql flavour)."""
    db = Database(":memory:")
    db.adapter = RecordingAdapter()
    db.factory = StatementFactory("mysql")
    return db


@pytest.fixture
def recording_model(recording_db: Database) -> TestModel:
    """TestModel registered on the recording database."""
    return recording_db.add_model(TestModel)


@pytest.fixture
def mysql_model() -> TestModel:
    """Model without a database, building mysql statements only."""
    return TestModel(None)


@pytest_asyncio.fixture
async def sqlite_db(tmp_path) -> AsyncGenerator[Database, None]:
    """SQLite database file with a users table."""
    db = Database(str(tmp_path / "test.db"))
    await db.execute(USERS_DDL)
    yield db
    await db.shutdown()


@pytest.fixture
def users(sqlite_db: Database) -> UsersModel:
    """UsersModel registered on the SQLite database."""
    return sqlite_db.add_model(UsersModel)
