"""
PostgreSQL access for the document store.

One psycopg2 ThreadedConnectionPool per client. dict and list parameters
are sent as JSONB and JSONB columns come back as Python objects, so the
store never handles JSON text itself.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

Params = Tuple | Dict | None


def _as_jsonb(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return psycopg2.extras.Json(value)
    return value


class PostgresClient:
    """
    Pooled PostgreSQL client returning rows as dicts.

    Every execute() runs in its own transaction: committed on success,
    rolled back on any error.

    Usage:
        db = PostgresClient(database_url)
        rows = db.execute("SELECT id, data FROM documents WHERE collection = %s", ("invoices",))
        db.close()
    """

    def __init__(
        self,
        database_url: str,
        min_connections: int = 1,
        max_connections: int = 10,
        statement_timeout_ms: int = 10_000,
    ):
        psycopg2.extras.register_default_jsonb(globally=True)
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=min_connections,
            maxconn=max_connections,
            dsn=database_url,
            connect_timeout=10,
            options=f"-c statement_timeout={statement_timeout_ms}",
        )
        logger.info(f"Postgres pool ready ({min_connections}-{max_connections} connections)")

    @contextmanager
    def transaction(self):
        """Borrow a connection for one transaction."""
        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            # Broken connections are discarded instead of going back to the pool
            self._pool.putconn(conn, close=bool(conn.closed))

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Run one statement. Returns row dicts, or [] for statements without a result set."""
        if isinstance(params, dict):
            params = {k: _as_jsonb(v) for k, v in params.items()}
        elif params is not None:
            params = tuple(_as_jsonb(v) for v in params)

        with self.transaction() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                if cur.description is None:
                    return []
                return [dict(row) for row in cur.fetchall()]

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        rows = self.execute(query, params)
        return rows[0] if rows else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        """First column of the first row, or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def close(self) -> None:
        self._pool.closeall()
        logger.info("Postgres pool closed")
