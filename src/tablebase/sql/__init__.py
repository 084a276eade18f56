# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async SQL layer: statement builder, condition maps, models and adapters.

Components:
    Database: Connection string -> adapter, shared execution, dedicated
              connections for transactions, model registry.
    Model: Base class for one table with statement builders (`_list`,
           `_insert`, ...) and their async executing counterparts.
    StatementFactory: Creates Select/Insert/Update/Delete statements for
                      one SQL flavour (mysql, sqlite, postgresql).
    parse_where: Compiles a condition map into WHERE predicates.
    DbAdapter: Abstract base for SQLite/MySQL/PostgreSQL adapters.

Transaction Model:
    Outside transactions every statement borrows a connection for its own
    round trip. Model.transactions() and Model.transaction_sqls() check
    out a dedicated connection:

    - BEGIN
    - run the callback / the statements in order
    - COMMIT, or ROLLBACK if anything (COMMIT included) fails
    - release the connection, always

Example:
    from tablebase.sql import Database, Model

    class UsersModel(Model):
        name = "users"

    db = Database("/data/app.db")
    users = db.add_model(UsersModel)

    await users.insert({"id": 1, "name": "Ada"})
    await users.update_by_primary(1, {"$n": "logins = logins + 1"}, raw=True)
    page = await users.page({"#name": "a"}, None, {"limit": 20})

    await db.shutdown()
"""

from .adapters import DbAdapter, ExecResult, get_adapter
from .conditions import parse_where, remove_undefined
from .database import Connection, Database
from .model import Model
from .paging import PageParams, PageResult
from .statement import Delete, Expr, Insert, Select, Statement, StatementFactory, Update

__all__ = [
    # Main classes
    "Database",
    "Connection",
    "Model",
    # Statements
    "StatementFactory",
    "Statement",
    "Select",
    "Insert",
    "Update",
    "Delete",
    "Expr",
    # Conditions and paging
    "parse_where",
    "remove_undefined",
    "PageParams",
    "PageResult",
    # Adapters
    "DbAdapter",
    "ExecResult",
    "get_adapter",
]
