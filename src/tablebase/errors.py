# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for statement building and execution."""

from __future__ import annotations

from typing import Any


class InvalidArgument(ValueError):
    """Raised while building a statement, before any I/O.

    Covers a missing primary key, an empty condition map where one is
    mandatory, an empty search keyword or column list.
    """


class EmptyPayload(InvalidArgument):
    """Raised when a mapping is empty after removing absent (None) values."""


class DatabaseError(Exception):
    """Driver error classified by the error hook.

    Attributes:
        code: Driver-specific error code or SQLSTATE, if known.
        original: The exception raised by the driver.
    """

    def __init__(self, message: str, code: Any = None, original: BaseException | None = None):
        super().__init__(message)
        self.code = code
        self.original = original


class DuplicateKeyError(DatabaseError):
    """Unique or primary key violation."""


__all__ = ["InvalidArgument", "EmptyPayload", "DatabaseError", "DuplicateKeyError"]
