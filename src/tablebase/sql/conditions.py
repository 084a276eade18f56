# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Condition maps compiled into WHERE predicates.

A condition map is a dict whose keys select how each entry becomes a
predicate. Rules are checked in order and the first match wins:

    {"$any": ["a = ? OR b = ?", 1, 2]}  raw clause, remaining items are values
    {"$any": "deleted_at IS NULL"}      raw clause without values
    {"#name": "jo"}                     name LIKE '%jo%'
    {"score > ?$": 10}                  legacy: key minus "$" is the clause
    {"id": [1, 2, 3]}                   id IN (1, 2, 3)
    {"status": "active"}                status = 'active'

The third form (a "$" after the first character) is kept for compatibility
only; prefer a "$"-prefixed raw clause.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import EmptyPayload
from .statement import Expr

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .statement import WhereMixin


def remove_undefined(data: Mapping[str, Any], allow_empty: bool = False) -> dict[str, Any]:
    """Return a copy of data without None values.

    Raises:
        EmptyPayload: If nothing is left and allow_empty is False.
    """
    result = {k: v for k, v in data.items() if v is not None}
    if not result and not allow_empty:
        raise EmptyPayload("Object is empty")
    return result


def parse_where(sql: WhereMixin, conditions: Mapping[str, Any]) -> None:
    """Append one WHERE predicate to sql for each entry of conditions."""
    for key, condition in conditions.items():
        if key.startswith("$"):
            if isinstance(condition, (list, tuple)):
                sql.where(condition[0], *condition[1:])
            elif isinstance(condition, (str, Expr)):
                sql.where(condition)
            else:
                raise TypeError(
                    f"Raw condition {key!r} must be a string, an Expr or a sequence, "
                    f"got {type(condition).__name__}"
                )
        elif "#" in key:
            sql.where(f"{key.replace('#', '', 1)} LIKE ?", f"%{condition}%")
        elif "$" in key:
            sql.where(key.replace("$", "", 1), condition)
        elif isinstance(condition, (list, tuple)):
            sql.where(f"{key} IN (?)", condition)
        else:
            sql.where(f"{key} = ?", condition)


__all__ = ["parse_where", "remove_undefined"]
