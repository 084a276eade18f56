# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter class for async database backends."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

# Quoted literals, then `?` or `%` outside them
_TOKENS = re.compile(r"('(?:[^']|'')*')|\?|%")


@dataclass
class ExecResult:
    """Outcome of one executed statement.

    Attributes:
        rows: Result rows as dicts (empty for writes).
        affected_rows: Rows changed by INSERT/UPDATE/DELETE.
        insert_id: Last generated id, when the driver reports one.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    affected_rows: int = 0
    insert_id: Any = None


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    Provides a unified interface for SQLite, MySQL and PostgreSQL with:
    - Connection management (acquire, release, shutdown)
    - Transaction control (begin, commit, rollback on connection)
    - Statement execution returning ExecResult

    Connection model:
    - acquire(): Returns a connection in autocommit mode (from pool or new file handle)
    - release(conn): Returns connection to pool or closes it
    - shutdown(): Closes connection pool (application shutdown only)

    Statements arrive with `?` positional placeholders; adapters whose
    driver uses another style set `placeholder` and get them converted.
    """

    flavour: str = "sqlite"
    placeholder: str = "?"  # Override in subclass

    @abstractmethod
    async def acquire(self) -> Any:
        """Acquire a connection.

        For pooled adapters: gets connection from pool.
        For file-based adapters: opens new connection.
        """
        ...

    @abstractmethod
    async def release(self, conn: Any) -> None:
        """Release a connection back to the pool or close it."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        ...

    @abstractmethod
    async def execute(
        self, conn: Any, query: str, values: Sequence[Any] | None = None
    ) -> ExecResult:
        """Execute one statement on connection."""
        ...

    @abstractmethod
    async def begin(self, conn: Any) -> None:
        """Start a transaction on connection."""
        ...

    @abstractmethod
    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        ...

    @abstractmethod
    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        ...

    # -------------------------------------------------------------------------
    # SQL Helpers
    # -------------------------------------------------------------------------

    def convert_placeholders(self, query: str, has_values: bool = True) -> str:
        """Convert `?` placeholders to the driver style.

        pyformat drivers interpolate with `%`, so literal percent signs are
        doubled when values are passed. Question marks inside quoted
        literals are left alone.
        """
        if self.placeholder == "?" or not has_values:
            return query

        def replace(match: re.Match[str]) -> str:
            if match.group(1) is not None:
                return match.group(1).replace("%", "%%")
            if match.group(0) == "%":
                return "%%"
            return self.placeholder

        return _TOKENS.sub(replace, query)
