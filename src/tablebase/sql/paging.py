# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Paging arguments for list/search/page.

Callers pass either positional paging values or a single PageParams (or
a mapping with the same keys) in the limit slot:

    await model.list({"status": "active"}, None, 20, 40, "name", False)
    await model.list({"status": "active"}, None, PageParams(limit=20, offset=40))
    await model.list({"status": "active"}, None, {"limit": 20, "offset": 40})

PageParams.resolve() turns either form into one PageParams with defaults
applied, so builders only ever see resolved values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypedDict


@dataclass(frozen=True)
class PageParams:
    """Resolved paging and ordering.

    Attributes:
        limit: Maximum rows.
        offset: Rows to skip.
        order: Sort column (None = unordered).
        asc: Sort direction.
    """

    limit: int | None = None
    offset: int | None = None
    order: str | None = None
    asc: bool | None = None

    @classmethod
    def resolve(
        cls,
        limit: int | PageParams | Mapping[str, Any] | None,
        offset: int | None,
        order: str | None,
        asc: bool | None,
        *,
        default_limit: int,
        default_order: str | None,
        default_asc: bool,
    ) -> PageParams:
        """Resolve positional or record-style paging into final values.

        Raises:
            TypeError: If a PageParams / mapping is combined with positional
                offset, order or asc, or a mapping has unknown keys.
        """
        if isinstance(limit, (PageParams, Mapping)) and (
            offset is not None or order is not None or asc is not None
        ):
            raise TypeError(
                "Paging given both as a record and as positional offset/order/asc"
            )
        if isinstance(limit, PageParams):
            given = limit
        elif isinstance(limit, Mapping):
            unknown = set(limit) - {"limit", "offset", "order", "asc"}
            if unknown:
                raise TypeError(f"Unknown paging keys: {', '.join(sorted(unknown))}")
            given = cls(**limit)
        else:
            given = cls(limit, offset, order, asc)

        return cls(
            limit=default_limit if given.limit is None else given.limit,
            offset=0 if given.offset is None else given.offset,
            order=default_order if given.order is None else given.order,
            asc=default_asc if given.asc is None else given.asc,
        )


class PageResult(TypedDict):
    """One page of rows plus the total number of matching rows."""

    count: int
    list: list[dict[str, Any]]


__all__ = ["PageParams", "PageResult"]
