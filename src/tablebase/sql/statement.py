# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Fluent SQL statement builder with positional placeholders.

Statements are built with chained calls and rendered in two forms:

- to_string(): literal SQL with values inlined (logging, snapshot tests)
- to_param(): (text, values) with `?` placeholders (execution)

A list or tuple bound to a single `?` in a WHERE clause expands to one
placeholder per item, so `where("id IN (?)", [1, 2, 3])` renders
`id IN (?, ?, ?)`. An empty sequence renders `NULL`.

Usage:
    factory = StatementFactory("mysql")

    sql = factory.select(auto_quote=True).from_("users").field("id").field("name")
    sql.where("status = ?", "active").order("name").limit(10)

    sql.to_string()
    # SELECT `id`, `name` FROM `users` WHERE (status = 'active') ORDER BY name ASC LIMIT 10

    sql.to_param()
    # ('SELECT `id`, `name` FROM `users` WHERE (status = ?) ORDER BY name ASC LIMIT 10', ['active'])
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ..errors import InvalidArgument

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
# Quoted literals, then `?` outside them
_PLACEHOLDERS = re.compile(r"('(?:[^']|'')*')|\?")


@dataclass(frozen=True)
class Flavour:
    """SQL dialect differences the builder cares about.

    Attributes:
        name: Dialect name.
        quote: Identifier quote character.
        native_upsert: True if INSERT ... ON DUPLICATE KEY UPDATE is supported.
        native_delete_limit: True if DELETE ... LIMIT is supported.
        row_key: Physical row identifier used to emulate DELETE ... LIMIT.
    """

    name: str
    quote: str
    native_upsert: bool
    native_delete_limit: bool
    row_key: str = ""


FLAVOURS: dict[str, Flavour] = {
    "mysql": Flavour("mysql", "`", native_upsert=True, native_delete_limit=True),
    "sqlite": Flavour(
        "sqlite", '"', native_upsert=False, native_delete_limit=False, row_key="rowid"
    ),
    "postgresql": Flavour(
        "postgresql", '"', native_upsert=False, native_delete_limit=False, row_key="ctid"
    ),
}


def literal(value: Any) -> str:
    """Render a Python value as an SQL literal (for to_string only)."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, bytes):
        return f"X'{value.hex()}'"
    if isinstance(value, datetime):
        value = value.isoformat(sep=" ")
    elif isinstance(value, (date, time)):
        value = value.isoformat()
    text = str(value).replace("'", "''")
    return f"'{text}'"


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _split_placeholders(text: str) -> list[str]:
    """Split text on `?` placeholders, leaving quoted literals intact."""
    parts = []
    start = 0
    for match in _PLACEHOLDERS.finditer(text):
        if match.group(1) is None:
            parts.append(text[start:match.start()])
            start = match.end()
    parts.append(text[start:])
    return parts


def render_clause(
    text: str, values: Sequence[Any], param: bool, expand: bool = True
) -> tuple[str, list[Any]]:
    """Substitute values into the `?` placeholders of a clause.

    Values beyond the placeholder count are kept as bound parameters in
    param mode and dropped from the literal form. A `?` inside a quoted
    literal is text, not a placeholder.
    """
    parts = _split_placeholders(text)
    slots = len(parts) - 1
    if slots > len(values):
        raise InvalidArgument(f"Clause {text!r} expects {slots} values, got {len(values)}")

    out = [parts[0]]
    bound: list[Any] = []
    for part, value in zip(parts[1:], values):
        if expand and _is_sequence(value):
            if not value:
                out.append("NULL")
            elif param:
                out.append(", ".join("?" * len(value)))
                bound.extend(value)
            else:
                out.append(", ".join(literal(v) for v in value))
        elif param:
            out.append("?")
            bound.append(value)
        else:
            out.append(literal(value))
        out.append(part)

    if param:
        bound.extend(values[slots:])
    return "".join(out), bound


class Expr:
    """Boolean expression made of AND/OR joined clauses.

    Usage:
        exp = factory.expr().or_("name LIKE ?", "%a%").or_("email LIKE ?", "%a%")
        sql.where(exp)  # WHERE (name LIKE '%a%' OR email LIKE '%a%')
    """

    def __init__(self) -> None:
        self._nodes: list[tuple[str, str | Expr, tuple[Any, ...]]] = []

    def and_(self, clause: str | Expr, *values: Any) -> Expr:
        self._nodes.append(("AND", clause, values))
        return self

    def or_(self, clause: str | Expr, *values: Any) -> Expr:
        self._nodes.append(("OR", clause, values))
        return self

    def __bool__(self) -> bool:
        return bool(self._nodes)

    def render(self, param: bool) -> tuple[str, list[Any]]:
        pieces: list[str] = []
        bound: list[Any] = []
        for op, clause, values in self._nodes:
            if isinstance(clause, Expr):
                text, clause_values = clause.render(param)
                if not text:
                    continue
                text = f"({text})"
            else:
                text, clause_values = render_clause(clause, values, param)
            if pieces:
                pieces.append(f" {op} ")
            pieces.append(text)
            bound.extend(clause_values)
        return "".join(pieces), bound

    def __str__(self) -> str:
        return self.render(param=False)[0]


class Statement:
    """Base class for all statements. Subclasses implement render()."""

    def __init__(self, flavour: Flavour, auto_quote: bool = False):
        self.flavour = flavour
        self.auto_quote = auto_quote

    def render(self, param: bool) -> tuple[str, list[Any]]:
        raise NotImplementedError

    def to_param(self) -> tuple[str, list[Any]]:
        """Return (text, values) with `?` placeholders."""
        return self.render(param=True)

    def to_string(self) -> str:
        """Return literal SQL text with values inlined."""
        return self.render(param=False)[0]

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.to_string()!r}>"

    def quote(self, name: str) -> str:
        """Quote an identifier if auto quoting is on and it is a plain name."""
        if not self.auto_quote or not _IDENTIFIER.match(name):
            return name
        q = self.flavour.quote
        return ".".join(f"{q}{part}{q}" for part in name.split("."))


class WhereMixin:
    """WHERE clause accumulation shared by SELECT, UPDATE and DELETE."""

    def _init_where(self) -> None:
        self._where: list[tuple[str | Expr, tuple[Any, ...]]] = []

    def where(self, clause: str | Expr, *values: Any):
        """Append a predicate. Predicates are parenthesised and ANDed."""
        self._where.append((clause, values))
        return self

    def render_where(self, param: bool) -> tuple[str, list[Any]]:
        pieces: list[str] = []
        bound: list[Any] = []
        for clause, values in self._where:
            if isinstance(clause, Expr):
                text, clause_values = clause.render(param)
            else:
                text, clause_values = render_clause(clause, values, param)
            if not text:
                continue
            pieces.append(f"({text})")
            bound.extend(clause_values)
        if not pieces:
            return "", bound
        return " WHERE " + " AND ".join(pieces), bound


class Select(WhereMixin, Statement):
    """SELECT statement."""

    def __init__(self, flavour: Flavour, auto_quote: bool = False):
        super().__init__(flavour, auto_quote)
        self._init_where()
        self._table = ""
        self._fields: list[tuple[str, str | None]] = []
        self._order: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def from_(self, table: str) -> Select:
        self._table = table
        return self

    def field(self, name: str, alias: str | None = None) -> Select:
        self._fields.append((name, alias))
        return self

    def order(self, column: str, asc: bool = True) -> Select:
        self._order.append((column, asc))
        return self

    def limit(self, limit: int | None) -> Select:
        self._limit = limit
        return self

    def offset(self, offset: int | None) -> Select:
        self._offset = offset
        return self

    def render(self, param: bool) -> tuple[str, list[Any]]:
        if not self._table:
            raise InvalidArgument("SELECT requires a table")
        if self._fields:
            cols = ", ".join(
                f"{self.quote(name)} AS {alias}" if alias else self.quote(name)
                for name, alias in self._fields
            )
        else:
            cols = "*"
        sql = f"SELECT {cols} FROM {self.quote(self._table)}"
        where_sql, values = self.render_where(param)
        sql += where_sql
        if self._order:
            sql += " ORDER BY " + ", ".join(
                f"{column} {'ASC' if asc else 'DESC'}" for column, asc in self._order
            )
        if self._limit is not None:
            sql += f" LIMIT {int(self._limit)}"
        if self._offset is not None:
            sql += f" OFFSET {int(self._offset)}"
        return sql, values


class Insert(Statement):
    """INSERT statement with optional upsert clause."""

    def __init__(self, flavour: Flavour, auto_quote: bool = False):
        super().__init__(flavour, auto_quote)
        self._table = ""
        self._rows: list[dict[str, Any]] = []
        self._on_dup: list[tuple[str, Any]] = []
        self._conflict_key: str | None = None

    def into(self, table: str) -> Insert:
        self._table = table
        return self

    def set_fields(self, fields: Mapping[str, Any]) -> Insert:
        """Set the single row to insert."""
        self._rows = [dict(fields)]
        return self

    def set_fields_rows(self, rows: Sequence[Mapping[str, Any]]) -> Insert:
        """Set multiple rows. Columns missing from a row are inserted as NULL."""
        self._rows = [dict(row) for row in rows]
        return self

    def on_dup_update(self, column: str, value: Any) -> Insert:
        self._on_dup.append((column, value))
        return self

    def conflict_key(self, column: str) -> Insert:
        """Conflict target for dialects spelling upsert as ON CONFLICT."""
        self._conflict_key = column
        return self

    def render(self, param: bool) -> tuple[str, list[Any]]:
        if not self._table:
            raise InvalidArgument("INSERT requires a table")
        columns: list[str] = []
        for row in self._rows:
            columns.extend(k for k in row if k not in columns)
        if not columns:
            raise InvalidArgument(f"INSERT INTO {self._table} has no fields")

        values: list[Any] = []
        tuples = []
        for row in self._rows:
            cells = []
            for column in columns:
                text, bound = render_clause("?", [row.get(column)], param, expand=False)
                cells.append(text)
                values.extend(bound)
            tuples.append(f"({', '.join(cells)})")

        col_list = ", ".join(self.quote(c) for c in columns)
        sql = f"INSERT INTO {self.quote(self._table)} ({col_list}) VALUES {', '.join(tuples)}"

        if self._on_dup:
            sets = []
            for column, value in self._on_dup:
                text, bound = render_clause(
                    f"{self.quote(column)} = ?", [value], param, expand=False
                )
                sets.append(text)
                values.extend(bound)
            if self.flavour.native_upsert:
                sql += " ON DUPLICATE KEY UPDATE " + ", ".join(sets)
            else:
                if not self._conflict_key:
                    raise InvalidArgument(
                        f"{self.flavour.name} upsert requires a conflict key column"
                    )
                sql += (
                    f" ON CONFLICT ({self.quote(self._conflict_key)}) DO UPDATE SET "
                    + ", ".join(sets)
                )
        return sql, values


class Update(WhereMixin, Statement):
    """UPDATE statement."""

    def __init__(self, flavour: Flavour, auto_quote: bool = False):
        super().__init__(flavour, auto_quote)
        self._init_where()
        self._table = ""
        self._sets: list[tuple[str, tuple[Any, ...]]] = []

    def table(self, table: str) -> Update:
        self._table = table
        return self

    def set(self, expression: str, *values: Any) -> Update:
        """Add a SET expression.

        With no values the expression is used verbatim (e.g. "n = n + 1").
        With values, `?` placeholders in the expression are bound.
        """
        self._sets.append((expression, values))
        return self

    def set_fields(self, fields: Mapping[str, Any]) -> Update:
        for column, value in fields.items():
            self.set(f"{self.quote(column)} = ?", value)
        return self

    def render(self, param: bool) -> tuple[str, list[Any]]:
        if not self._table:
            raise InvalidArgument("UPDATE requires a table")
        if not self._sets:
            raise InvalidArgument(f"UPDATE {self._table} has no fields to set")
        values: list[Any] = []
        sets = []
        for expression, expr_values in self._sets:
            text, bound = render_clause(expression, expr_values, param, expand=False)
            sets.append(text)
            values.extend(bound)
        sql = f"UPDATE {self.quote(self._table)} SET {', '.join(sets)}"
        where_sql, where_values = self.render_where(param)
        return sql + where_sql, values + where_values


class Delete(WhereMixin, Statement):
    """DELETE statement.

    Dialects without DELETE ... LIMIT get the limit applied through a
    subquery on the physical row key (rowid, ctid).
    """

    def __init__(self, flavour: Flavour, auto_quote: bool = False):
        super().__init__(flavour, auto_quote)
        self._init_where()
        self._table = ""
        self._limit: int | None = None

    def from_(self, table: str) -> Delete:
        self._table = table
        return self

    def limit(self, limit: int | None) -> Delete:
        self._limit = limit
        return self

    def render(self, param: bool) -> tuple[str, list[Any]]:
        if not self._table:
            raise InvalidArgument("DELETE requires a table")
        table = self.quote(self._table)
        where_sql, values = self.render_where(param)
        if self._limit is None:
            return f"DELETE FROM {table}{where_sql}", values
        if self.flavour.native_delete_limit:
            return f"DELETE FROM {table}{where_sql} LIMIT {int(self._limit)}", values
        key = self.flavour.row_key
        return (
            f"DELETE FROM {table} WHERE {key} IN "
            f"(SELECT {key} FROM {table}{where_sql} LIMIT {int(self._limit)})"
        ), values


class StatementFactory:
    """Creates statements for one SQL dialect.

    Held by a Database (or passed to a Model) instead of a module global,
    so databases of different dialects can coexist in one process.
    """

    def __init__(self, flavour: str = "mysql"):
        if flavour not in FLAVOURS:
            raise ValueError(f"Unknown SQL flavour: '{flavour}'. Supported: {', '.join(FLAVOURS)}")
        self.flavour = FLAVOURS[flavour]

    def select(self, auto_quote: bool = False) -> Select:
        return Select(self.flavour, auto_quote)

    def insert(self, auto_quote: bool = False) -> Insert:
        return Insert(self.flavour, auto_quote)

    def update(self, auto_quote: bool = False) -> Update:
        return Update(self.flavour, auto_quote)

    def delete(self, auto_quote: bool = False) -> Delete:
        return Delete(self.flavour, auto_quote)

    def expr(self) -> Expr:
        return Expr()


__all__ = [
    "Delete",
    "Expr",
    "FLAVOURS",
    "Flavour",
    "Insert",
    "Select",
    "Statement",
    "StatementFactory",
    "Update",
    "literal",
    "render_clause",
]
