"""
In-process document store.

Thread-safe dict-of-dicts implementation of DocumentStore. Used by the test
suite and for running the API locally without Postgres/Valkey. Change
listeners are called synchronously on the writer's thread, after the write
lock is released, so a listener may write back into the store.
"""

import copy
import logging
import threading
from itertools import count
from typing import Any, Callable
from uuid import uuid4

from core.store import Document, DocumentStore, Query, SnapshotListener

logger = logging.getLogger(__name__)


class _Watcher:
    def __init__(self, query: Query, listener: SnapshotListener):
        self.query = query
        self.listener = listener
        self.active = True


class InMemoryDocumentStore(DocumentStore):
    """
    Dict-backed document store.

    Usage:
        store = InMemoryDocumentStore()
        doc_id = store.create("invoices", {"owner_id": "u1"})
        store.get("invoices", doc_id)
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        # Insertion sequence breaks ordering ties (same created_at)
        self._sequence: dict[tuple[str, str], int] = {}
        self._counter = count()
        self._watchers: list[_Watcher] = []
        self._lock = threading.RLock()

    def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
            self._sequence[(collection, doc_id)] = next(self._counter)
        self._notify(collection)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Document | None:
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            return Document(id=doc_id, data=copy.deepcopy(data))

    def query(self, query: Query) -> list[Document]:
        with self._lock:
            docs = self._collections.get(query.collection, {})
            matched = [
                (doc_id, data) for doc_id, data in docs.items()
                if query.matches(data)
            ]

            if query.order_by is not None:
                matched.sort(
                    key=lambda pair: self._sort_key(query, pair[0], pair[1]),
                    reverse=query.descending,
                )
            else:
                matched.sort(key=lambda pair: self._sequence[(query.collection, pair[0])])

            if query.limit is not None:
                matched = matched[:query.limit]

            return [Document(id=doc_id, data=copy.deepcopy(data)) for doc_id, data in matched]

    def _sort_key(self, query: Query, doc_id: str, data: dict[str, Any]):
        value = data.get(query.order_by)
        sequence = self._sequence[(query.collection, doc_id)]
        # Missing values sort first ascending, last descending
        if value is None:
            return (0, "", sequence)
        return (1, value, sequence)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return False
            data.update(copy.deepcopy(fields))
        self._notify(collection)
        return True

    def upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> Document:
        with self._lock:
            data = self._collections.setdefault(collection, {}).setdefault(doc_id, {})
            data.update(copy.deepcopy(fields))
            self._sequence.setdefault((collection, doc_id), next(self._counter))
            merged = Document(id=doc_id, data=copy.deepcopy(data))
        self._notify(collection)
        return merged

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            removed = self._collections.get(collection, {}).pop(doc_id, None)
            self._sequence.pop((collection, doc_id), None)
        if removed is None:
            return False
        self._notify(collection)
        return True

    def increment(self, collection: str, doc_id: str, floor: int = 0) -> int:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            current = docs.get(doc_id, {}).get("value", 0)
            value = max(current, floor) + 1
            docs[doc_id] = {"value": value}
            self._sequence.setdefault((collection, doc_id), next(self._counter))
        return value

    def add_to_fields(
        self,
        collection: str,
        doc_id: str,
        deltas: dict[str, float],
        fields: dict[str, Any] | None = None,
    ) -> Document | None:
        with self._lock:
            data = self._collections.get(collection, {}).get(doc_id)
            if data is None:
                return None
            for key, delta in deltas.items():
                data[key] = (data.get(key) or 0) + delta
            data.update(copy.deepcopy(fields or {}))
            updated = Document(id=doc_id, data=copy.deepcopy(data))
        self._notify(collection)
        return updated

    def watch(self, query: Query, listener: SnapshotListener) -> Callable[[], None]:
        watcher = _Watcher(query, listener)
        with self._lock:
            self._watchers.append(watcher)

        self._deliver(watcher)

        def release() -> None:
            with self._lock:
                watcher.active = False
                if watcher in self._watchers:
                    self._watchers.remove(watcher)

        return release

    def _notify(self, collection: str) -> None:
        with self._lock:
            watchers = [w for w in self._watchers if w.query.collection == collection]
        for watcher in watchers:
            self._deliver(watcher)

    def _deliver(self, watcher: _Watcher) -> None:
        if not watcher.active:
            return
        snapshot = self.query(watcher.query)
        try:
            watcher.listener(snapshot)
        except Exception:
            logger.exception("Snapshot listener failed for collection %s", watcher.query.collection)
