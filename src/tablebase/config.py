# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration dataclasses for databases and table bindings.

Configuration via environment variables:
    TABLEBASE_DB: Connection string (SQLite path, mysql:// or postgresql:// URL)
    TABLEBASE_PREFIX: Table name prefix applied to every model
    TABLEBASE_POOL_SIZE: Maximum pooled connections (default: 10)
    TABLEBASE_CONNECT_TIMEOUT: Pool connect timeout in seconds (default: 10)

Usage:
    # From environment:
    db = Database(config_from_env())

    # Explicit configuration:
    db = Database(DatabaseConfig(db_url="/data/app.db", prefix="app_"))
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class DatabaseConfig:
    """Database connection settings.

    Attributes:
        db_url: SQLite path or mysql:// / postgresql:// URL.
        prefix: Table prefix applied to models registered on this database.
        pool_size: Maximum pool size for pooled adapters.
        connect_timeout: Seconds to wait for the pool to open.
    """

    db_url: str = ":memory:"
    prefix: str = ""
    pool_size: int = 10
    connect_timeout: float = 10.0


@dataclass
class ModelOptions:
    """Per-model table binding options.

    Attributes:
        prefix: Table name prefix. None inherits the database prefix.
        primary_key: Primary key column (default "id").
        fields: Default projection. Empty means all columns.
        order: Default sort column.
        asc: Default sort direction.
    """

    prefix: str | None = None
    primary_key: str | None = None
    fields: list[str] | None = None
    order: str | None = None
    asc: bool | None = None


def config_from_env() -> DatabaseConfig:
    """Build DatabaseConfig from TABLEBASE_* environment variables."""
    return DatabaseConfig(
        db_url=os.environ.get("TABLEBASE_DB", ":memory:"),
        prefix=os.environ.get("TABLEBASE_PREFIX", ""),
        pool_size=int(os.environ.get("TABLEBASE_POOL_SIZE", "10")),
        connect_timeout=float(os.environ.get("TABLEBASE_CONNECT_TIMEOUT", "10")),
    )


__all__ = ["DatabaseConfig", "ModelOptions", "config_from_env"]
