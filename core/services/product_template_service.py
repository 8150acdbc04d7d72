"""
Product template service: named bundles of line items.

total_price is the undiscounted, untaxed sum of the items. It is written
with every change to items and recomputed on read.
"""

import logging
from typing import Callable

from core.documents import stamp, store_call, to_document
from core.errors import NotFoundError, UnauthorizedError
from core.models import ProductTemplate, ProductTemplateCreate, ProductTemplateUpdate
from core.models.product import items_total
from core.services.product_service import distinct_categories
from core.store import PRODUCT_TEMPLATES, Document, DocumentStore, Query
from core.sync import Subscription, subscribe_query
from utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


class ProductTemplateService:
    """Service for product template operations."""

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _to_template(self, doc: Document) -> ProductTemplate:
        template = ProductTemplate.model_validate({**doc.data, "id": doc.id})
        return template.model_copy(update={"total_price": items_total(template.items)})

    def _owner_query(self, owner_id: str, **where) -> Query:
        return Query(
            PRODUCT_TEMPLATES,
            where={"owner_id": owner_id, **where},
            order_by="created_at",
            descending=True,
        )

    def _load_owned(self, template_id: str, owner_id: str, action: str) -> tuple[Document, ProductTemplate]:
        doc = store_call("load product template", self.store.get, PRODUCT_TEMPLATES, template_id)
        if doc is None:
            raise NotFoundError("product template", template_id)
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("product template", action)
        return doc, self._to_template(doc)

    def create(self, data: ProductTemplateCreate, owner_id: str) -> ProductTemplate:
        now = self.clock.now()
        document = to_document({
            **data.model_dump(),
            "total_price": items_total(data.items),
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        })
        template_id = store_call("create product template", self.store.create, PRODUCT_TEMPLATES, document)
        logger.info(f"Created product template {template_id} for owner {owner_id}")
        return self._to_template(Document(template_id, document))

    def get(self, template_id: str, owner_id: str) -> ProductTemplate | None:
        """
        Get a product template by ID.

        Raises:
            UnauthorizedError: Template belongs to another owner
        """
        doc = store_call("load product template", self.store.get, PRODUCT_TEMPLATES, template_id)
        if doc is None:
            return None
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("product template", "access")
        return self._to_template(doc)

    def update(self, template_id: str, data: ProductTemplateUpdate, owner_id: str) -> ProductTemplate:
        """
        Merge the fields set on data into the template.

        Raises:
            NotFoundError, UnauthorizedError
        """
        doc, current = self._load_owned(template_id, owner_id, "update")

        changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not changes:
            return current

        if data.items is not None:
            changes["total_price"] = items_total(data.items)
        changes["updated_at"] = stamp(self.clock.now())

        updated = store_call(
            "update product template", self.store.update, PRODUCT_TEMPLATES, template_id, changes
        )
        if not updated:
            raise NotFoundError("product template", template_id)
        return self._to_template(Document(template_id, {**doc.data, **changes}))

    def delete(self, template_id: str, owner_id: str) -> None:
        """
        Raises:
            NotFoundError, UnauthorizedError
        """
        self._load_owned(template_id, owner_id, "delete")
        deleted = store_call("delete product template", self.store.delete, PRODUCT_TEMPLATES, template_id)
        if not deleted:
            raise NotFoundError("product template", template_id)
        logger.info(f"Deleted product template {template_id}")

    def duplicate(self, template_id: str, owner_id: str, new_name: str | None = None) -> ProductTemplate:
        """
        Copy a template. The copy is named new_name, or "<name> (Copy)".

        Raises:
            NotFoundError, UnauthorizedError
        """
        _, source = self._load_owned(template_id, owner_id, "duplicate")
        data = ProductTemplateCreate(
            **source.model_dump(include={"description", "items", "category"}),
            name=new_name or f"{source.name} (Copy)",
        )
        return self.create(data, owner_id)

    def list_by_owner(self, owner_id: str) -> list[ProductTemplate]:
        """All of the owner's templates, newest first."""
        docs = store_call("list product templates", self.store.query, self._owner_query(owner_id))
        return [self._to_template(doc) for doc in docs]

    def list_by_category(self, owner_id: str, category: str) -> list[ProductTemplate]:
        query = self._owner_query(owner_id, category=category)
        docs = store_call("list product templates", self.store.query, query)
        return [self._to_template(doc) for doc in docs]

    def categories(self, owner_id: str) -> list[str]:
        return distinct_categories(self.list_by_owner(owner_id))

    def subscribe(
        self,
        owner_id: str,
        on_change: Callable[[list[ProductTemplate]], None],
    ) -> Subscription[ProductTemplate]:
        return store_call(
            "subscribe to product templates",
            subscribe_query,
            self.store,
            self._owner_query(owner_id),
            self._to_template,
            on_change,
        )
