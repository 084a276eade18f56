# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Active-record style base class for one table.

Every operation comes in two layers:

- `_name(...)`: pure builder returning a Statement (no I/O). Argument
  errors raise InvalidArgument here, before anything is executed.
- `name(...)`: async, executes the statement through query() and maps the
  result (row, rows, count, affected rows, page).

Usage:
    class UsersModel(Model):
        name = "users"
        fields = ["id", "name", "email"]
        order = "id"

    db = Database("/data/app.db")
    users = db.add_model(UsersModel)

    await users.insert({"name": "Ada", "email": "ada@example.com"})
    row = await users.get_by_primary(1)
    rows = await users.list({"#name": "ad"}, None, PageParams(limit=20))
    page = await users.page({"status": ["active", "pending"]})

    async def move(conn):
        await users.query(users._incr_fields(1, ["credits"], -5), connection=conn)
        await users.query(users._incr_fields(2, ["credits"], 5), connection=conn)

    await users.transactions("move credits", move)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import secrets
from typing import TYPE_CHECKING, Any, TypeVar

from ..config import ModelOptions
from ..errors import InvalidArgument
from ..hooks import ModelHooks
from .adapters import ExecResult
from .conditions import parse_where, remove_undefined
from .paging import PageParams, PageResult
from .statement import Delete, Insert, Select, Statement, StatementFactory, Update

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .database import Connection, Database

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = dict[str, Any]
Rows = list[Row]
Results = list[ExecResult]

LIST_LIMIT = 999
SEARCH_LIMIT = 10


class Model:
    """Base class for table models.

    Subclasses set the table binding as class attributes; ModelOptions
    passed at construction override them.

    Attributes:
        name: Table name without prefix.
        primary_key: Primary key column.
        fields: Default projection (empty = all columns).
        order: Default sort column.
        asc: Default sort direction.
        table: Prefixed table name used in statements.
        db: Database the model executes on.
        hooks: Error and debug hooks.
        factory: StatementFactory for the database flavour.
    """

    name: str = ""
    primary_key: str = "id"
    fields: Sequence[str] = []
    order: str | None = None
    asc: bool = True

    def __init__(
        self,
        db: Database | None,
        table: str | None = None,
        options: ModelOptions | None = None,
        hooks: ModelHooks | None = None,
        factory: StatementFactory | None = None,
    ) -> None:
        options = options or ModelOptions()
        self.db = db

        name = table or self.name
        if not name:
            raise InvalidArgument(f"{type(self).__name__} must define 'name'")
        if options.prefix is not None:
            prefix = options.prefix
        else:
            prefix = db.config.prefix if db is not None else ""
        self.table = prefix + name

        self.primary_key = options.primary_key or self.primary_key
        if not self.primary_key:
            raise InvalidArgument(f"{type(self).__name__} must define 'primary_key'")
        self.fields = list(self.fields if options.fields is None else options.fields)
        self.order = self.order if options.order is None else options.order
        self.asc = self.asc if options.asc is None else options.asc

        self.hooks = hooks or ModelHooks()
        if factory is None:
            factory = db.factory if db is not None else StatementFactory()
        self.factory = factory

    def _fields(self, fields: Sequence[str] | None) -> Sequence[str]:
        return self.fields if fields is None else fields

    def _require_primary(self, primary: Any) -> None:
        if primary is None:
            raise InvalidArgument("`primary` must not be empty")

    def _require_conditions(self, conditions: Mapping[str, Any] | None) -> dict[str, Any]:
        stripped = remove_undefined(conditions or {}, allow_empty=True)
        if not stripped:
            raise InvalidArgument("`conditions` must not be empty")
        return stripped

    def _set_values(self, sql: Update, values: Mapping[str, Any], raw: bool) -> Update:
        """SET every field; in raw mode "$"-keys carry a verbatim expression."""
        if not raw:
            return sql.set_fields(values)
        for key, value in values.items():
            if key.startswith("$"):
                sql.set(value)
            else:
                sql.set(f"{key} = ?", value)
        return sql

    # -------------------------------------------------------------------------
    # Statement builders
    # -------------------------------------------------------------------------

    def _count(self, conditions: Mapping[str, Any] | None = None) -> Select:
        sql = self.factory.select().from_(self.table).field("COUNT(*)", "c")
        parse_where(sql, remove_undefined(conditions or {}, allow_empty=True))
        return sql

    def _get_by_primary(self, primary: Any, fields: Sequence[str] | None = None) -> Select:
        self._require_primary(primary)
        sql = (
            self.factory.select(auto_quote=True)
            .from_(self.table)
            .where(f"{self.primary_key} = ?", primary)
            .limit(1)
        )
        for f in self._fields(fields):
            sql.field(f)
        return sql

    def _get_one_by_field(
        self, conditions: Mapping[str, Any] | None = None, fields: Sequence[str] | None = None
    ) -> Select:
        sql = self.factory.select(auto_quote=True).from_(self.table).limit(1)
        for f in self._fields(fields):
            sql.field(f)
        parse_where(sql, remove_undefined(conditions or {}, allow_empty=True))
        return sql

    def _delete_by_primary(self, primary: Any, limit: int = 1) -> Delete:
        self._require_primary(primary)
        return (
            self.factory.delete()
            .from_(self.table)
            .where(f"{self.primary_key} = ?", primary)
            .limit(limit)
        )

    def _delete_by_field(self, conditions: Mapping[str, Any], limit: int = 1) -> Delete:
        conditions = self._require_conditions(conditions)
        sql = self.factory.delete().from_(self.table).limit(limit)
        parse_where(sql, conditions)
        return sql

    def _insert(self, data: Mapping[str, Any]) -> Insert:
        return self.factory.insert().into(self.table).set_fields(remove_undefined(data))

    def _batch_insert(self, rows: Sequence[Mapping[str, Any]]) -> Insert:
        if not rows:
            raise InvalidArgument("`rows` must not be empty")
        return (
            self.factory.insert()
            .into(self.table)
            .set_fields_rows([remove_undefined(row) for row in rows])
        )

    def _update_by_primary(
        self, primary: Any, values: Mapping[str, Any], raw: bool = False
    ) -> Update:
        self._require_primary(primary)
        values = remove_undefined(values)
        sql = self.factory.update().table(self.table).where(f"{self.primary_key} = ?", primary)
        return self._set_values(sql, values, raw)

    def _update_by_field(
        self, conditions: Mapping[str, Any], values: Mapping[str, Any], raw: bool = False
    ) -> Update:
        conditions = self._require_conditions(conditions)
        values = remove_undefined(values)
        sql = self.factory.update().table(self.table)
        parse_where(sql, conditions)
        return self._set_values(sql, values, raw)

    def _create_or_update(
        self, data: Mapping[str, Any], update_keys: Sequence[str] | None = None
    ) -> Insert:
        """INSERT, updating update_keys on a duplicate key.

        A two-item list/tuple value is a (column, value) pair: the value is
        inserted under the key and the pair drives the duplicate-key SET.
        Keys with no value in data are skipped.
        """
        if update_keys is None:
            update_keys = list(data)
        data = remove_undefined(data)

        row = {}
        for key, value in data.items():
            row[key] = value[1] if _is_pair(value) else value

        sql = self.factory.insert().into(self.table).set_fields(row).conflict_key(self.primary_key)
        for key in update_keys:
            value = data.get(key)
            if _is_pair(value):
                sql.on_dup_update(value[0], value[1])
            elif value is not None:
                sql.on_dup_update(key, value)
        return sql

    def _incr_fields(self, primary: Any, fields: Sequence[str], num: int | float = 1) -> Update:
        self._require_primary(primary)
        if not fields:
            raise InvalidArgument("`fields` must not be empty")
        if isinstance(num, bool) or not isinstance(num, (int, float)):
            raise InvalidArgument(f"`num` must be a number, got {num!r}")
        sql = self.factory.update().table(self.table).where(f"{self.primary_key} = ?", primary)
        for f in fields:
            sql.set(f"{f} = {f} + {num}")
        return sql

    def _list(
        self,
        conditions: Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
        limit: int | PageParams | Mapping[str, Any] | None = None,
        offset: int | None = None,
        order: str | None = None,
        asc: bool | None = None,
    ) -> Select:
        page = PageParams.resolve(
            limit, offset, order, asc,
            default_limit=LIST_LIMIT, default_order=self.order, default_asc=self.asc,
        )
        sql = (
            self.factory.select(auto_quote=True)
            .from_(self.table)
            .offset(page.offset)
            .limit(page.limit)
        )
        for f in self._fields(fields):
            sql.field(f)
        parse_where(sql, remove_undefined(conditions or {}, allow_empty=True))
        if page.order:
            sql.order(page.order, page.asc)
        return sql

    def _search(
        self,
        keyword: str,
        columns: Sequence[str],
        fields: Sequence[str] | None = None,
        limit: int | PageParams | Mapping[str, Any] | None = None,
        offset: int | None = None,
        order: str | None = None,
        asc: bool | None = None,
    ) -> Select:
        if not keyword or not columns:
            raise InvalidArgument("`keyword` | `columns` must not be empty")
        page = PageParams.resolve(
            limit, offset, order, asc,
            default_limit=SEARCH_LIMIT, default_order=self.order, default_asc=True,
        )
        sql = (
            self.factory.select(auto_quote=True)
            .from_(self.table)
            .offset(page.offset)
            .limit(page.limit)
        )
        for f in self._fields(fields):
            sql.field(f)
        exp = self.factory.expr()
        for column in columns:
            exp.or_(f"{column} LIKE ?", f"%{keyword}%")
        sql.where(exp)
        if page.order:
            sql.order(page.order, page.asc)
        return sql

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    @staticmethod
    def _render(
        sql: Statement | str, values: Sequence[Any] | None = None
    ) -> tuple[str, Sequence[Any] | None, str]:
        """Return (text, values, loggable text) for a statement or raw SQL."""
        if isinstance(sql, Statement):
            text, bound = sql.to_param()
            return text, bound, sql.to_string()
        return sql, values, sql

    async def query(
        self,
        sql: Statement | str,
        values: Sequence[Any] | None = None,
        connection: Connection | None = None,
    ) -> ExecResult:
        """Execute a statement (or raw SQL text) and return the raw result.

        Args:
            sql: Statement from a builder, or literal SQL text.
            values: Positional values for raw SQL text with `?` placeholders.
            connection: Dedicated connection (inside a transaction). Defaults
                to the model's database.

        Raises:
            Whatever the error hook raises for a failed execution.
        """
        target = connection if connection is not None else self.db
        if target is None:
            raise RuntimeError(f"Model {type(self).__name__} has no database to execute on")
        text, bound, display = self._render(sql, values)
        debug = getattr(target, "debug", None) or self.hooks.on_debug
        debug(display)
        try:
            return await target.execute(text, bound)
        except Exception as err:
            self.hooks.on_error(err)
            raise

    async def count(self, conditions: Mapping[str, Any] | None = None) -> int:
        """Count rows matching conditions."""
        res = await self.query(self._count(conditions))
        return res.rows[0]["c"] if res.rows else 0

    async def get_by_primary(
        self, primary: Any, fields: Sequence[str] | None = None
    ) -> Row | None:
        """Fetch one row by primary key, or None if missing."""
        res = await self.query(self._get_by_primary(primary, fields))
        return res.rows[0] if res.rows else None

    async def get_one_by_field(
        self, conditions: Mapping[str, Any] | None = None, fields: Sequence[str] | None = None
    ) -> Row | None:
        """Fetch the first row matching conditions, or None."""
        res = await self.query(self._get_one_by_field(conditions, fields))
        return res.rows[0] if res.rows else None

    async def delete_by_primary(self, primary: Any, limit: int = 1) -> int:
        """Delete by primary key, return affected rows."""
        res = await self.query(self._delete_by_primary(primary, limit))
        return res.affected_rows

    async def delete_by_field(self, conditions: Mapping[str, Any], limit: int = 1) -> int:
        """Delete rows matching conditions.

        Args:
            conditions: Condition map. Must not be empty.
            limit: Maximum rows to delete (default 1).

        Returns:
            Number of deleted rows.
        """
        res = await self.query(self._delete_by_field(conditions, limit))
        return res.affected_rows

    async def get_by_field(
        self, conditions: Mapping[str, Any] | None = None, fields: Sequence[str] | None = None
    ) -> Rows:
        """Fetch up to 999 rows matching conditions."""
        return await self.list(conditions, fields, LIST_LIMIT)

    async def insert(self, data: Mapping[str, Any]) -> ExecResult:
        """Insert one row. None values are left out."""
        return await self.query(self._insert(data))

    async def batch_insert(self, rows: Sequence[Mapping[str, Any]]) -> ExecResult:
        return await self.query(self._batch_insert(rows))

    async def update_by_primary(
        self, primary: Any, values: Mapping[str, Any], raw: bool = False
    ) -> int:
        """Update one row by primary key.

        Args:
            primary: Primary key value.
            values: Column-value pairs. None values are left out.
            raw: If True, keys starting with "$" hold verbatim SET expressions.

        Returns:
            Number of affected rows.
        """
        res = await self.query(self._update_by_primary(primary, values, raw))
        return res.affected_rows

    async def create_or_update(
        self, data: Mapping[str, Any], update_keys: Sequence[str] | None = None
    ) -> ExecResult:
        """Insert a row, or update update_keys if the key already exists."""
        return await self.query(self._create_or_update(data, update_keys))

    async def update_by_field(
        self, conditions: Mapping[str, Any], values: Mapping[str, Any], raw: bool = False
    ) -> int:
        """Update rows matching conditions, return affected rows."""
        res = await self.query(self._update_by_field(conditions, values, raw))
        return res.affected_rows

    async def incr_fields(
        self, primary: Any, fields: Sequence[str], num: int | float = 1
    ) -> int:
        """Add num to each field of the row with this primary key."""
        res = await self.query(self._incr_fields(primary, fields, num))
        return res.affected_rows

    async def list(
        self,
        conditions: Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
        limit: int | PageParams | Mapping[str, Any] | None = None,
        offset: int | None = None,
        order: str | None = None,
        asc: bool | None = None,
    ) -> Rows:
        """Fetch rows matching conditions.

        Paging is given positionally (limit, offset, order, asc) or as a
        single PageParams / mapping in place of limit.
        """
        res = await self.query(self._list(conditions, fields, limit, offset, order, asc))
        return res.rows

    async def search(
        self,
        keyword: str,
        columns: Sequence[str],
        fields: Sequence[str] | None = None,
        limit: int | PageParams | Mapping[str, Any] | None = None,
        offset: int | None = None,
        order: str | None = None,
        asc: bool | None = None,
    ) -> Rows:
        """Fetch rows where any of columns contains keyword (top 10 by default)."""
        res = await self.query(
            self._search(keyword, columns, fields, limit, offset, order, asc)
        )
        return res.rows

    async def page(
        self,
        conditions: Mapping[str, Any] | None = None,
        fields: Sequence[str] | None = None,
        limit: int | PageParams | Mapping[str, Any] | None = None,
        offset: int | None = None,
        order: str | None = None,
        asc: bool | None = None,
    ) -> PageResult:
        """Fetch a page of rows plus the total count of matching rows.

        The list and the count run concurrently and are not read from the
        same snapshot. An empty page still returns {"count": n, "list": []}.
        """
        rows, count = await asyncio.gather(
            self.list(conditions, fields, limit, offset, order, asc),
            self.count(conditions),
        )
        return {"count": count or 0, "list": rows}

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def _transaction(self, label: str, work: Callable[[Connection], Awaitable[T]]) -> T:
        """BEGIN, run work, COMMIT; ROLLBACK on error; always release."""
        if self.db is None:
            raise RuntimeError(f"Model {type(self).__name__} has no database to execute on")
        debug = self.hooks.debug_sql(f"Transactions[{secrets.token_hex(3)}] - {label}")
        conn = await self.db.get_connection()
        conn.debug = debug
        try:
            await conn.begin()
            debug("BEGIN")
            try:
                result = await work(conn)
                await conn.commit()
            except Exception as err:
                try:
                    await conn.rollback()
                    debug("ROLLBACK")
                except Exception:
                    logger.exception("ROLLBACK failed in transaction %r", label)
                self.hooks.on_error(err)
                raise
            debug("COMMIT")
            return result
        finally:
            await conn.release()

    async def transactions(self, name: str, func: Callable[[Connection], Any]) -> Any:
        """Run func(connection) inside a transaction on a dedicated connection.

        func may be sync or async. Statements inside it should run through
        `self.query(..., connection=conn)` so they share the transaction.

        Returns:
            Whatever func returns.

        Raises:
            InvalidArgument: If name is empty (before any connection is acquired).
        """
        if not name:
            raise InvalidArgument("`name` must not be empty")

        async def work(conn: Connection) -> Any:
            result = func(conn)
            if inspect.isawaitable(result):
                result = await result
            return result

        return await self._transaction(name, work)

    async def transaction_sqls(self, sqls: Sequence[Statement | str]) -> Results:
        """Execute statements in order inside one transaction.

        Stops at the first failure, which rolls the whole transaction back.

        Returns:
            One ExecResult per statement.
        """
        if not sqls:
            raise InvalidArgument("`sqls` must not be empty")

        async def work(conn: Connection) -> Results:
            results = []
            for sql in sqls:
                text, values, display = self._render(sql)
                conn.debug(display)
                results.append(await conn.execute(text, values))
            return results

        return await self._transaction(f"{len(sqls)} statements", work)


def _is_pair(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2


__all__ = ["Model", "LIST_LIMIT", "SEARCH_LIMIT"]
