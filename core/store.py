"""
Document store interface consumed by the services.

Documents are JSON-ready dicts addressed by (collection, id). Ids are
assigned by the store on create. Implementations live in clients/:

- InMemoryDocumentStore: tests and local development
- PostgresDocumentStore: JSONB documents, Valkey pub/sub change feed

Every implementation raises StoreUnavailableError on transport/backend
failure and nothing else for infrastructure problems.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

# Collection names
INVOICES = "invoices"
CUSTOMERS = "customers"
COUNTERS = "counters"
PRODUCTS = "products"
PRODUCT_TEMPLATES = "product_templates"
SETTINGS = "settings"


@dataclass(frozen=True)
class Document:
    """A stored document and its id."""

    id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class Query:
    """
    Equality-filtered, ordered query on one collection.

    Example:
        Query("invoices", where={"owner_id": owner_id},
              order_by="created_at", descending=True, limit=1)
    """

    collection: str
    where: dict[str, Any] = field(default_factory=dict)
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None

    def matches(self, data: dict[str, Any]) -> bool:
        """Whether a document satisfies the equality filters."""
        return all(data.get(key) == value for key, value in self.where.items())


# Receives the full ordered result of the watched query after every change
SnapshotListener = Callable[[list[Document]], None]


class DocumentStore(ABC):
    """Abstract document store."""

    @abstractmethod
    def create(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document, return its new id."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, None if absent."""

    @abstractmethod
    def query(self, query: Query) -> list[Document]:
        """Run a query, return matching documents in order."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        """
        Merge top-level fields into a document.

        Returns False if the document does not exist.
        """

    @abstractmethod
    def upsert(self, collection: str, doc_id: str, fields: dict[str, Any]) -> Document:
        """Merge top-level fields into a document, creating it under doc_id if absent."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""

    @abstractmethod
    def increment(self, collection: str, doc_id: str, floor: int = 0) -> int:
        """
        Atomically advance a counter document and return the new value.

        The new value is max(current, floor) + 1. A missing counter counts
        as 0. Concurrent callers always receive distinct values.
        """

    @abstractmethod
    def add_to_fields(
        self,
        collection: str,
        doc_id: str,
        deltas: dict[str, float],
        fields: dict[str, Any] | None = None,
    ) -> Document | None:
        """
        Atomically add deltas to numeric fields and merge fields.

        A missing numeric field counts as 0. Returns the updated document,
        None if it does not exist. Concurrent callers never lose an update.
        """

    @abstractmethod
    def watch(self, query: Query, listener: SnapshotListener) -> Callable[[], None]:
        """
        Deliver the query result now and again after every change to the
        collection.

        Returns a release function that detaches the listener.
        """
