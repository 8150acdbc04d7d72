"""
Product catalog service.

Same ownership rules as invoices and customers: absent reads as None,
someone else's product raises UnauthorizedError.
"""

import logging
from typing import Callable

from core.documents import stamp, store_call, to_document
from core.errors import NotFoundError, UnauthorizedError
from core.models import Product, ProductCreate, ProductUpdate
from core.store import PRODUCTS, Document, DocumentStore, Query
from core.sync import Subscription, subscribe_query
from utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def distinct_categories(records) -> list[str]:
    """Sorted unique non-empty categories of products or templates."""
    return sorted({record.category for record in records if record.category})


class ProductService:
    """Service for product catalog operations."""

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _to_product(self, doc: Document) -> Product:
        return Product.model_validate({**doc.data, "id": doc.id})

    def _owner_query(self, owner_id: str, **where) -> Query:
        return Query(
            PRODUCTS,
            where={"owner_id": owner_id, **where},
            order_by="created_at",
            descending=True,
        )

    def _load_owned(self, product_id: str, owner_id: str, action: str) -> tuple[Document, Product]:
        doc = store_call("load product", self.store.get, PRODUCTS, product_id)
        if doc is None:
            raise NotFoundError("product", product_id)
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("product", action)
        return doc, self._to_product(doc)

    def create(self, data: ProductCreate, owner_id: str) -> Product:
        now = self.clock.now()
        document = to_document({
            **data.model_dump(),
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        })
        product_id = store_call("create product", self.store.create, PRODUCTS, document)
        logger.info(f"Created product {product_id} for owner {owner_id}")
        return self._to_product(Document(product_id, document))

    def get(self, product_id: str, owner_id: str) -> Product | None:
        """
        Get product by ID.

        Raises:
            UnauthorizedError: Product belongs to another owner
        """
        doc = store_call("load product", self.store.get, PRODUCTS, product_id)
        if doc is None:
            return None
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("product", "access")
        return self._to_product(doc)

    def update(self, product_id: str, data: ProductUpdate, owner_id: str) -> Product:
        """
        Update product fields. Explicit nulls are ignored.

        Raises:
            NotFoundError, UnauthorizedError
        """
        doc, current = self._load_owned(product_id, owner_id, "update")

        changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not changes:
            return current

        changes["updated_at"] = stamp(self.clock.now())
        updated = store_call("update product", self.store.update, PRODUCTS, product_id, changes)
        if not updated:
            raise NotFoundError("product", product_id)
        return self._to_product(Document(product_id, {**doc.data, **changes}))

    def delete(self, product_id: str, owner_id: str) -> None:
        """
        Delete a product. Invoices keep the line items copied from it.

        Raises:
            NotFoundError, UnauthorizedError
        """
        self._load_owned(product_id, owner_id, "delete")
        deleted = store_call("delete product", self.store.delete, PRODUCTS, product_id)
        if not deleted:
            raise NotFoundError("product", product_id)
        logger.info(f"Deleted product {product_id}")

    def list_by_owner(self, owner_id: str) -> list[Product]:
        """All of the owner's products, newest first."""
        docs = store_call("list products", self.store.query, self._owner_query(owner_id))
        return [self._to_product(doc) for doc in docs]

    def list_by_category(self, owner_id: str, category: str) -> list[Product]:
        query = self._owner_query(owner_id, category=category)
        docs = store_call("list products", self.store.query, query)
        return [self._to_product(doc) for doc in docs]

    def categories(self, owner_id: str) -> list[str]:
        """The owner's product categories, sorted, without blanks."""
        return distinct_categories(self.list_by_owner(owner_id))

    def subscribe(
        self,
        owner_id: str,
        on_change: Callable[[list[Product]], None],
    ) -> Subscription[Product]:
        """Push the owner's product list (newest first) now and after every change."""
        return store_call(
            "subscribe to products",
            subscribe_query,
            self.store,
            self._owner_query(owner_id),
            self._to_product,
            on_change,
        )
