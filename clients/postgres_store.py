"""
PostgreSQL-backed DocumentStore.

Documents are JSONB rows keyed by (collection, id). Equality filters use
JSONB containment (data @> filter) so one GIN index serves every query.
Counters live in their own table and are advanced with a single
INSERT ... ON CONFLICT DO UPDATE, which Postgres serializes per row.

Change feed: after each committed write a small JSON message is published
on Valkey channel "invoicer:changes:<collection>". Watchers re-run their
query when a message arrives, so every delivery is a full snapshot.
"""

import json
import logging
from typing import Any, Callable
from uuid import uuid4

import psycopg2
import redis

from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from core.errors import StoreUnavailableError
from core.store import Document, DocumentStore, Query, SnapshotListener

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "invoicer:changes:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data JSONB NOT NULL,
    seq BIGSERIAL,
    PRIMARY KEY (collection, id)
);
CREATE INDEX IF NOT EXISTS documents_data_idx ON documents USING GIN (data jsonb_path_ops);
CREATE TABLE IF NOT EXISTS counters (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    value BIGINT NOT NULL,
    PRIMARY KEY (collection, id)
);
"""


def change_channel(collection: str) -> str:
    return f"{CHANNEL_PREFIX}{collection}"


class PostgresDocumentStore(DocumentStore):
    """DocumentStore over PostgresClient with a Valkey change feed."""

    def __init__(self, postgres: PostgresClient, valkey: ValkeyClient):
        self.postgres = postgres
        self.valkey = valkey

    def ensure_schema(self) -> None:
        """Create tables and index if missing."""
        self._run(self.postgres.execute, SCHEMA)

    def _run(self, fn: Callable, *args) -> Any:
        """Call a PostgresClient method, translating driver errors."""
        try:
            return fn(*args)
        except psycopg2.Error as e:
            raise StoreUnavailableError(f"Database error: {e}") from e

    def _publish(self, collection: str, op: str, doc_id: str) -> None:
        # The write already committed; a lost notification only delays watchers
        try:
            self.valkey.publish(change_channel(collection), json.dumps({"op": op, "id": doc_id}))
        except redis.RedisError as e:
            logger.warning(f"Change notification for {collection}/{doc_id} not published: {e}")

    def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self._run(
            self.postgres.execute,
            "INSERT INTO documents (collection, id, data) VALUES (%s, %s, %s)",
            (collection, doc_id, data),
        )
        self._publish(collection, "create", doc_id)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Document | None:
        row = self._run(
            self.postgres.execute_single,
            "SELECT id, data FROM documents WHERE collection = %s AND id = %s",
            (collection, doc_id),
        )
        if row is None:
            return None
        return Document(id=row["id"], data=row["data"])

    def query(self, query: Query) -> list[Document]:
        sql = "SELECT id, data FROM documents WHERE collection = %s AND data @> %s"
        params: list[Any] = [query.collection, dict(query.where)]

        direction = "DESC" if query.descending else "ASC"
        if query.order_by is not None:
            sql += f" ORDER BY data->>%s {direction}, seq {direction}"
            params.append(query.order_by)
        else:
            sql += " ORDER BY seq ASC"

        if query.limit is not None:
            sql += " LIMIT %s"
            params.append(query.limit)

        rows = self._run(self.postgres.execute, sql, tuple(params))
        return [Document(id=row["id"], data=row["data"]) for row in rows]

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        row = self._run(
            self.postgres.execute_single,
            """
            UPDATE documents SET data = data || %s
            WHERE collection = %s AND id = %s
            RETURNING id
            """,
            (fields, collection, doc_id),
        )
        if row is None:
            return False
        self._publish(collection, "update", doc_id)
        return True

    def upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> Document:
        row = self._run(
            self.postgres.execute_single,
            """
            INSERT INTO documents (collection, id, data) VALUES (%s, %s, %s)
            ON CONFLICT (collection, id)
            DO UPDATE SET data = documents.data || EXCLUDED.data
            RETURNING id, data
            """,
            (collection, doc_id, fields),
        )
        self._publish(collection, "upsert", doc_id)
        return Document(id=row["id"], data=row["data"])

    def delete(self, collection: str, doc_id: str) -> bool:
        row = self._run(
            self.postgres.execute_single,
            "DELETE FROM documents WHERE collection = %s AND id = %s RETURNING id",
            (collection, doc_id),
        )
        if row is None:
            return False
        self._publish(collection, "delete", doc_id)
        return True

    def increment(self, collection: str, doc_id: str, floor: int = 0) -> int:
        value = self._run(
            self.postgres.execute_scalar,
            """
            INSERT INTO counters (collection, id, value) VALUES (%s, %s, %s + 1)
            ON CONFLICT (collection, id)
            DO UPDATE SET value = GREATEST(counters.value, %s) + 1
            RETURNING value
            """,
            (collection, doc_id, floor, floor),
        )
        return int(value)

    def add_to_fields(
        self,
        collection: str,
        doc_id: str,
        deltas: dict[str, float],
        fields: dict[str, Any] | None = None,
    ) -> Document | None:
        # Sums are computed inside the UPDATE, so the row lock serializes writers
        sums = ", ".join(
            "%s::text, COALESCE((data->>%s)::numeric, 0) + %s" for _ in deltas
        )
        params: list[Any] = []
        for key, delta in deltas.items():
            params.extend([key, key, delta])
        params.extend([fields or {}, collection, doc_id])

        row = self._run(
            self.postgres.execute_single,
            f"""
            UPDATE documents SET data = data || jsonb_build_object({sums}) || %s
            WHERE collection = %s AND id = %s
            RETURNING id, data
            """,
            tuple(params),
        )
        if row is None:
            return None
        self._publish(collection, "update", doc_id)
        return Document(id=row["id"], data=row["data"])

    def watch(self, query: Query, listener: SnapshotListener) -> Callable[[], None]:
        def refresh(_message: str | None = None) -> None:
            try:
                snapshot = self.query(query)
            except StoreUnavailableError:
                logger.exception(f"Could not refresh watched query on {query.collection}")
                return
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Snapshot listener failed for collection {query.collection}")

        try:
            release = self.valkey.subscribe(change_channel(query.collection), refresh)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"Change feed unavailable: {e}") from e

        refresh()
        return release
