# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error and debug hooks injected into models.

Models do not subclass to customize logging or error translation: they
receive a ModelHooks instance. The error hook may translate a driver error
into a DatabaseError subclass but must always raise.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import NoReturn

from .errors import DatabaseError, DuplicateKeyError

sql_logger = logging.getLogger("tablebase.sql")

# MySQL ER_DUP_ENTRY and PostgreSQL unique_violation
MYSQL_DUP_ENTRY = 1062
PG_UNIQUE_VIOLATION = "23505"


def is_duplicate_key(err: BaseException) -> bool:
    """Return True if a driver error reports a unique/primary key conflict."""
    if getattr(err, "sqlstate", None) == PG_UNIQUE_VIOLATION:
        return True
    args = getattr(err, "args", ())
    if args and args[0] == MYSQL_DUP_ENTRY:
        return True
    return "UNIQUE constraint failed" in str(err)


def default_error_handler(err: Exception) -> NoReturn:
    """Classify known conflict errors, re-raise everything else unchanged."""
    if isinstance(err, DatabaseError):
        raise err
    if is_duplicate_key(err):
        code = getattr(err, "sqlstate", None) or (err.args[0] if err.args else None)
        raise DuplicateKeyError(str(err), code=code, original=err) from err
    raise err


def default_debug(sql: str) -> None:
    sql_logger.debug(sql)


@dataclass
class ModelHooks:
    """Capabilities a model uses for logging and error translation.

    Attributes:
        on_error: Called with every execution or transaction error. Must raise.
        on_debug: Sink for rendered SQL text.
    """

    on_error: Callable[[Exception], NoReturn] = field(default=default_error_handler)
    on_debug: Callable[[str], None] = field(default=default_debug)

    def debug_sql(self, name: str) -> Callable[[str], None]:
        """Return a debug sink that prefixes every statement with name."""

        def debug(sql: str) -> None:
            self.on_debug(f"{name}: {sql}")

        return debug


__all__ = ["ModelHooks", "default_error_handler", "default_debug", "is_duplicate_key"]
