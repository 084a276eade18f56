# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for Model.transactions / transaction_sqls connection lifecycle.

The recording adapter logs every call, so each test asserts the exact
sequence the dedicated connection observed.
"""

from __future__ import annotations

import pytest

from tablebase import DuplicateKeyError, InvalidArgument, ModelHooks

INSERT_A = "INSERT INTO test (a) VALUES (?)"
INSERT_B = "INSERT INTO test (b) VALUES (?)"


class TestTransactions:
    """Tests for transactions(name, func)."""

    async def test_success_commits_and_releases(self, recording_model):
        """Normal completion: BEGIN, statements, COMMIT, RELEASE."""
        adapter = recording_model.db.adapter

        async def work(conn):
            await recording_model.query(recording_model._insert({"a": 1}), connection=conn)
            await recording_model.query(recording_model._insert({"b": 2}), connection=conn)
            return "done"

        result = await recording_model.transactions("two inserts", work)

        assert result == "done"
        assert adapter.calls == ["ACQUIRE", "BEGIN", INSERT_A, INSERT_B, "COMMIT", "RELEASE"]
        assert adapter.values == [[1], [2]]

    async def test_sync_callback(self, recording_model):
        """A plain function works as the unit of work."""
        adapter = recording_model.db.adapter

        result = await recording_model.transactions("sync", lambda conn: 42)

        assert result == 42
        assert adapter.calls == ["ACQUIRE", "BEGIN", "COMMIT", "RELEASE"]

    async def test_callback_failure_rolls_back(self, recording_model):
        """Failure after two statements: ROLLBACK, never COMMIT."""
        adapter = recording_model.db.adapter

        async def work(conn):
            await recording_model.query(recording_model._insert({"a": 1}), connection=conn)
            await recording_model.query(recording_model._insert({"b": 2}), connection=conn)
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await recording_model.transactions("failing", work)

        assert adapter.calls == ["ACQUIRE", "BEGIN", INSERT_A, INSERT_B, "ROLLBACK", "RELEASE"]

    async def test_statement_failure_rolls_back(self, recording_model):
        adapter = recording_model.db.adapter
        adapter.fail_on.add(INSERT_B)

        async def work(conn):
            await recording_model.query(recording_model._insert({"a": 1}), connection=conn)
            await recording_model.query(recording_model._insert({"b": 2}), connection=conn)

        with pytest.raises(RuntimeError, match="failed"):
            await recording_model.transactions("failing statement", work)

        assert adapter.calls == ["ACQUIRE", "BEGIN", INSERT_A, INSERT_B, "ROLLBACK", "RELEASE"]

    async def test_commit_failure_rolls_back(self, recording_model):
        adapter = recording_model.db.adapter
        adapter.fail_on.add("COMMIT")

        with pytest.raises(RuntimeError, match="COMMIT failed"):
            await recording_model.transactions("bad commit", lambda conn: None)

        assert adapter.calls == ["ACQUIRE", "BEGIN", "COMMIT", "ROLLBACK", "RELEASE"]

    async def test_rollback_failure_keeps_original_error(
        self, recording_db, recording_model, caplog
    ):
        """A failing ROLLBACK is logged; the work error still reaches on_error and the caller."""
        recording_db.adapter.fail_on.add("ROLLBACK")
        seen = []

        def on_error(err):
            seen.append(err)
            raise err

        hooks = ModelHooks(on_error=on_error)
        model = recording_db.add_model(type(recording_model), hooks=hooks)

        def work(conn):
            raise ValueError("original")

        with pytest.raises(ValueError, match="original"):
            await model.transactions("bad rollback", work)

        assert [type(e) for e in seen] == [ValueError]
        assert recording_db.adapter.calls == ["ACQUIRE", "BEGIN", "ROLLBACK", "RELEASE"]
        assert "ROLLBACK failed in transaction 'bad rollback'" in caplog.text

    async def test_begin_failure_releases_without_rollback(self, recording_model):
        adapter = recording_model.db.adapter
        adapter.fail_on.add("BEGIN")
        called = []

        with pytest.raises(RuntimeError, match="BEGIN failed"):
            await recording_model.transactions("bad begin", called.append)

        assert called == []
        assert adapter.calls == ["ACQUIRE", "BEGIN", "RELEASE"]

    async def test_acquire_failure(self, recording_model):
        adapter = recording_model.db.adapter
        adapter.fail_on.add("ACQUIRE")

        with pytest.raises(RuntimeError, match="ACQUIRE failed"):
            await recording_model.transactions("no connection", lambda conn: None)

        assert adapter.calls == ["ACQUIRE"]

    async def test_empty_name_raises_before_acquire(self, recording_model):
        adapter = recording_model.db.adapter

        with pytest.raises(InvalidArgument, match="`name` must not be empty"):
            await recording_model.transactions("", lambda conn: None)

        assert adapter.calls == []

    async def test_error_hook_receives_failure(self, recording_db, recording_model):
        """on_error sees the callback error and may translate it."""
        seen = []

        def on_error(err):
            seen.append(err)
            raise DuplicateKeyError(str(err), original=err) from err

        hooks = ModelHooks(on_error=on_error)
        model = recording_db.add_model(type(recording_model), hooks=hooks)

        def work(conn):
            raise KeyError("dup")

        with pytest.raises(DuplicateKeyError) as exc_info:
            await model.transactions("translated", work)

        assert isinstance(seen[0], KeyError)
        assert exc_info.value.original is seen[0]
        assert recording_db.adapter.calls[-2:] == ["ROLLBACK", "RELEASE"]

    async def test_debug_lines_carry_transaction_name(self, recording_db, recording_model):
        lines: list[str] = []
        hooks = ModelHooks(on_debug=lines.append)
        model = recording_db.add_model(type(recording_model), hooks=hooks)

        async def work(conn):
            await model.query(model._insert({"a": 1}), connection=conn)

        await model.transactions("audit", work)

        assert len(lines) == 3
        assert all(line.startswith("Transactions[") for line in lines)
        assert all(" - audit: " in line for line in lines)
        assert lines[0].endswith(": BEGIN")
        assert lines[1].endswith(": INSERT INTO test (a) VALUES (1)")
        assert lines[2].endswith(": COMMIT")


class TestTransactionSqls:
    """Tests for transaction_sqls(sqls)."""

    async def test_runs_statements_in_order(self, recording_model):
        adapter = recording_model.db.adapter

        results = await recording_model.transaction_sqls(
            [recording_model._insert({"a": 1}), "DELETE FROM test"]
        )

        assert len(results) == 2
        assert adapter.calls == [
            "ACQUIRE", "BEGIN", INSERT_A, "DELETE FROM test", "COMMIT", "RELEASE",
        ]

    async def test_stops_at_first_failure(self, recording_model):
        adapter = recording_model.db.adapter
        adapter.fail_on.add("DELETE FROM test")

        with pytest.raises(RuntimeError):
            await recording_model.transaction_sqls(
                [recording_model._insert({"a": 1}), "DELETE FROM test", "SELECT 1"]
            )

        assert "SELECT 1" not in adapter.calls
        assert adapter.calls[-2:] == ["ROLLBACK", "RELEASE"]
        assert "COMMIT" not in adapter.calls

    async def test_empty_list_raises(self, recording_model):
        with pytest.raises(InvalidArgument, match="`sqls` must not be empty"):
            await recording_model.transaction_sqls([])
        assert recording_model.db.adapter.calls == []
