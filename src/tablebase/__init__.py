# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""tablebase: active-record style table models over async SQL adapters."""

from .config import DatabaseConfig, ModelOptions, config_from_env
from .errors import DatabaseError, DuplicateKeyError, EmptyPayload, InvalidArgument
from .hooks import ModelHooks
from .sql import Database, Model, PageParams, StatementFactory

__version__ = "0.1.0"

__all__ = [
    "Database",
    "DatabaseConfig",
    "DatabaseError",
    "DuplicateKeyError",
    "EmptyPayload",
    "InvalidArgument",
    "Model",
    "ModelHooks",
    "ModelOptions",
    "PageParams",
    "StatementFactory",
    "config_from_env",
]
