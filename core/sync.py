"""
Push subscriptions over a watched store query.

Every delivery is the full, ordered result of the query, never a diff.
Deliveries may lag behind writes (eventually consistent); callers treat
each list as authoritative and replace what they had.

Unsubscribing is deterministic: once unsubscribe() returns, on_change is
not called again, even if the backend listener thread is mid-delivery.
"""

import logging
import queue
import threading
from typing import Callable, Generic, TypeVar

from core.store import Document, DocumentStore, Query

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription(Generic[T]):
    """
    Handle for a live query subscription.

    Usage:
        sub = invoice_service.subscribe(owner_id, render)
        ...
        sub.unsubscribe()   # or sub()
    """

    def __init__(self, parse: Callable[[Document], T], on_change: Callable[[list[T]], None]):
        self._parse = parse
        self._on_change = on_change
        self._release: Callable[[], None] | None = None
        self._active = True
        # Re-entrant: on_change may unsubscribe from inside a delivery
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self._active

    def _attach(self, release: Callable[[], None]) -> None:
        with self._lock:
            if self._active:
                self._release = release
                return
        # Unsubscribed during the initial delivery
        release()

    def _deliver(self, docs: list[Document]) -> None:
        with self._lock:
            if not self._active:
                return
            try:
                self._on_change([self._parse(doc) for doc in docs])
            except Exception:
                logger.exception("Subscriber callback failed; subscription stays active")

    def unsubscribe(self) -> None:
        """Stop deliveries and release the backend listener. Idempotent."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            release, self._release = self._release, None
        if release is not None:
            release()
        if isinstance(self._on_change, SnapshotQueue):
            self._on_change.close()

    __call__ = unsubscribe


def subscribe_query(
    store: DocumentStore,
    query: Query,
    parse: Callable[[Document], T],
    on_change: Callable[[list[T]], None],
) -> Subscription[T]:
    """Watch query on store, delivering parsed snapshots to on_change."""
    subscription = Subscription(parse, on_change)
    release = store.watch(query, subscription._deliver)
    subscription._attach(release)
    return subscription


class SnapshotQueue(Generic[T]):
    """
    Bounded channel of snapshots, usable as an on_change callback.

    When full, the oldest snapshot is dropped: each snapshot supersedes the
    previous ones, so a slow consumer only ever needs the latest.
    Closed automatically when its subscription is unsubscribed; get()
    then returns None.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 8):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize + 1)  # +1 keeps room for the close marker
        self._maxsize = maxsize
        self._closed = False
        self._lock = threading.Lock()

    def __call__(self, snapshot: list[T]) -> None:
        with self._lock:
            if self._closed:
                return
            while self._queue.qsize() >= self._maxsize:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
            self._queue.put_nowait(snapshot)

    def get(self, timeout: float | None = None) -> list[T] | None:
        """
        Next snapshot, blocking up to timeout seconds.

        Returns None once closed and drained.

        Raises:
            queue.Empty: Timed out while still open
        """
        item = self._queue.get(timeout=timeout)
        if item is self._CLOSED:
            # Leave the marker for other consumers
            self._queue.put_nowait(self._CLOSED)
            return None
        return item

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(self._CLOSED)
