"""Tests for PostgresClient - pooled psycopg2 access (driver mocked)."""

from unittest.mock import MagicMock, patch

import psycopg2
import psycopg2.extras
import pytest

from clients.postgres_client import PostgresClient

URL = "postgresql://invoicer@localhost/invoicer_test"


@pytest.fixture
def pool_cls():
    with patch("clients.postgres_client.psycopg2.pool.ThreadedConnectionPool") as pool_cls:
        yield pool_cls


@pytest.fixture
def pool(pool_cls):
    """Patched pool handing out one mock connection."""
    pool = pool_cls.return_value
    conn = MagicMock()
    conn.closed = False
    pool.getconn.return_value = conn
    return pool


def _cursor(pool, rows, description=True):
    conn = pool.getconn.return_value
    cursor = conn.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = rows
    cursor.description = [("col",)] if description else None
    return conn, cursor


class TestPostgresClientInit:
    """Connection pool setup."""

    def test_pool_gets_dsn_and_statement_timeout(self, pool_cls):
        PostgresClient(URL, statement_timeout_ms=2500)

        kwargs = pool_cls.call_args.kwargs
        assert kwargs["dsn"] == URL
        assert kwargs["options"] == "-c statement_timeout=2500"

    def test_close_closes_pool(self, pool):
        PostgresClient(URL).close()

        pool.closeall.assert_called_once()


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts_and_commits(self, pool):
        conn, _ = _cursor(pool, [{"num": 1, "word": "hello"}])

        results = PostgresClient(URL).execute("SELECT 1 as num, 'hello' as word")

        assert results == [{"num": 1, "word": "hello"}]
        conn.commit.assert_called_once()
        pool.putconn.assert_called_once_with(conn, close=False)

    def test_execute_without_result_set_returns_empty_list(self, pool):
        conn, _ = _cursor(pool, [], description=False)

        assert PostgresClient(URL).execute("CREATE TABLE x (id int)") == []
        conn.commit.assert_called_once()

    def test_execute_single_and_scalar(self, pool):
        _cursor(pool, [{"answer": 42}])
        client = PostgresClient(URL)

        assert client.execute_single("SELECT 42 as answer") == {"answer": 42}
        assert client.execute_scalar("SELECT 42 as answer") == 42

    def test_no_rows_returns_none(self, pool):
        _cursor(pool, [])
        client = PostgresClient(URL)

        assert client.execute_single("SELECT 1 WHERE false") is None
        assert client.execute_scalar("SELECT 1 WHERE false") is None

    def test_dict_and_list_params_sent_as_jsonb(self, pool):
        _, cursor = _cursor(pool, [])

        PostgresClient(URL).execute("INSERT ...", ("id", {"a": 1}, [1, 2]))

        sent = cursor.execute.call_args[0][1]
        assert sent[0] == "id"
        assert isinstance(sent[1], psycopg2.extras.Json)
        assert isinstance(sent[2], psycopg2.extras.Json)

    def test_named_params_converted_too(self, pool):
        _, cursor = _cursor(pool, [])

        PostgresClient(URL).execute("UPDATE ...", {"data": {"a": 1}, "id": "d1"})

        sent = cursor.execute.call_args[0][1]
        assert isinstance(sent["data"], psycopg2.extras.Json)
        assert sent["id"] == "d1"


class TestTransactionFailures:

    def test_error_rolls_back_and_returns_connection(self, pool):
        conn, cursor = _cursor(pool, [])
        cursor.execute.side_effect = psycopg2.IntegrityError("duplicate key")

        with pytest.raises(psycopg2.IntegrityError):
            PostgresClient(URL).execute("SELECT 1")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn, close=False)

    def test_broken_connection_is_discarded(self, pool):
        conn, cursor = _cursor(pool, [])

        def drop_connection(*args):
            conn.closed = True
            raise psycopg2.OperationalError("server closed the connection")

        cursor.execute.side_effect = drop_connection

        with pytest.raises(psycopg2.OperationalError):
            PostgresClient(URL).execute("SELECT 1")

        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn, close=True)
