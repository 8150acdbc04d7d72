"""
Customer service for CRUD operations and invoice aggregates.

Same ownership rules as invoices: absent reads as None, someone else's
customer raises UnauthorizedError. total_invoices and total_amount are only
written by adjust_stats.
"""

import logging
from typing import Callable

from core.documents import stamp, store_call, to_document
from core.errors import NotFoundError, UnauthorizedError
from core.models import Customer, CustomerCreate, CustomerUpdate
from core.store import CUSTOMERS, Document, DocumentStore, Query
from core.sync import Subscription, subscribe_query
from utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

# Fields an explicit null may clear
_CLEARABLE_FIELDS = {"email", "tax_id"}


class CustomerService:
    """Service for customer operations."""

    def __init__(self, store: DocumentStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _to_customer(self, doc: Document) -> Customer:
        return Customer.model_validate({**doc.data, "id": doc.id})

    def _owner_query(self, owner_id: str) -> Query:
        return Query(CUSTOMERS, where={"owner_id": owner_id}, order_by="created_at", descending=True)

    def _load_owned(self, customer_id: str, owner_id: str, action: str) -> tuple[Document, Customer]:
        doc = store_call("load customer", self.store.get, CUSTOMERS, customer_id)
        if doc is None:
            raise NotFoundError("customer", customer_id)
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("customer", action)
        return doc, self._to_customer(doc)

    def create(self, data: CustomerCreate, owner_id: str) -> Customer:
        """
        Create a new customer.

        Args:
            data: Customer creation data
            owner_id: Caller's user id

        Returns:
            Created customer with zeroed aggregates
        """
        now = self.clock.now()
        document = to_document({
            **data.model_dump(),
            "owner_id": owner_id,
            "total_invoices": 0,
            "total_amount": 0,
            "created_at": now,
            "updated_at": now,
        })
        customer_id = store_call("create customer", self.store.create, CUSTOMERS, document)
        logger.info(f"Created customer {customer_id} for owner {owner_id}")
        return self._to_customer(Document(customer_id, document))

    def get(self, customer_id: str, owner_id: str) -> Customer | None:
        """
        Get customer by ID.

        Returns:
            Customer if found, None otherwise

        Raises:
            UnauthorizedError: Customer belongs to another owner
        """
        doc = store_call("load customer", self.store.get, CUSTOMERS, customer_id)
        if doc is None:
            return None
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("customer", "access")
        return self._to_customer(doc)

    def update(self, customer_id: str, data: CustomerUpdate, owner_id: str) -> Customer:
        """
        Update customer fields.

        Args:
            customer_id: Customer id
            data: Fields to update (only explicitly set fields are changed)
            owner_id: Caller's user id

        Raises:
            NotFoundError, UnauthorizedError
        """
        doc, current = self._load_owned(customer_id, owner_id, "update")

        changes = {
            key: value
            for key, value in data.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in _CLEARABLE_FIELDS
        }
        if not changes:
            return current

        changes["updated_at"] = stamp(self.clock.now())
        updated = store_call("update customer", self.store.update, CUSTOMERS, customer_id, changes)
        if not updated:
            raise NotFoundError("customer", customer_id)
        return self._to_customer(Document(customer_id, {**doc.data, **changes}))

    def delete(self, customer_id: str, owner_id: str) -> None:
        """
        Delete a customer. Invoices that reference it keep their customer_id.

        Raises:
            NotFoundError, UnauthorizedError
        """
        self._load_owned(customer_id, owner_id, "delete")
        deleted = store_call("delete customer", self.store.delete, CUSTOMERS, customer_id)
        if not deleted:
            raise NotFoundError("customer", customer_id)
        logger.info(f"Deleted customer {customer_id}")

    def list_by_owner(self, owner_id: str) -> list[Customer]:
        """All of the owner's customers, newest first."""
        docs = store_call("list customers", self.store.query, self._owner_query(owner_id))
        return [self._to_customer(doc) for doc in docs]

    def adjust_stats(self, customer_id: str, owner_id: str, amount: float, is_increment: bool) -> Customer:
        """
        Count an invoice in (or out of) a customer's aggregates.

        Adds or removes one invoice and amount from total_invoices and
        total_amount in a single atomic store write, so concurrent invoice
        writes never lose a count. Ownership is checked before anything is
        written.

        Args:
            customer_id: Customer referenced by the invoice
            owner_id: Owner of the invoice
            amount: Invoice total
            is_increment: True for a created invoice, False for a deleted one

        Raises:
            NotFoundError, UnauthorizedError, OperationFailedError
        """
        self._load_owned(customer_id, owner_id, "update")

        sign = 1 if is_increment else -1
        updated = store_call(
            "update customer stats",
            self.store.add_to_fields,
            CUSTOMERS,
            customer_id,
            {"total_invoices": sign, "total_amount": sign * amount},
            {"updated_at": stamp(self.clock.now())},
        )
        if updated is None:
            raise NotFoundError("customer", customer_id)
        return self._to_customer(updated)

    def subscribe(
        self,
        owner_id: str,
        on_change: Callable[[list[Customer]], None],
    ) -> Subscription[Customer]:
        """Push the owner's customer list (newest first) now and after every change."""
        return store_call(
            "subscribe to customers",
            subscribe_query,
            self.store,
            self._owner_query(owner_id),
            self._to_customer,
            on_change,
        )
