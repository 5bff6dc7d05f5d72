"""Unit tests for PostgresSyncStore behaviour that needs no database."""

import pytest

from helpers import run_async
from tasksync.store.postgres import PostgresSyncStore, _rows_affected
from tasksync.store.repository import DatabaseError


class TestPostgresSyncStore:
    def test_queries_before_connect_raise_database_error(self):
        store = PostgresSyncStore("postgresql://localhost/tasks")
        with pytest.raises(DatabaseError):
            run_async(store.get_task(1))

    def test_disconnect_without_pool_is_safe(self):
        run_async(PostgresSyncStore("postgresql://localhost/tasks").disconnect())

    @pytest.mark.parametrize(
        "status,expected",
        [("DELETE 0", 0), ("DELETE 3", 3), ("UPDATE 1", 1), ("INSERT 0 1", 1)],
    )
    def test_rows_affected(self, status, expected):
        assert _rows_affected(status) == expected
