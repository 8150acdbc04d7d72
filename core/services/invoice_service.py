"""
Invoice service: ownership-checked persistence and lifecycle.

Every operation takes the caller's owner id explicitly and compares it to the
stored owner. Absent records read as None (get) or NotFoundError (writes);
a record owned by someone else always raises UnauthorizedError.

Derived totals are recomputed before every write and after every read, so a
document edited behind our back still comes out consistent.
"""

import logging
from datetime import timedelta
from typing import Any, Callable

from pydantic import BaseModel, Field

from core.config import InvoicerConfig
from core.documents import stamp, store_call, to_document
from core.errors import (
    DuplicateInvoiceNumberError,
    InvoicerError,
    NotFoundError,
    OperationFailedError,
    UnauthorizedError,
    ValidationFailure,
)
from core.event_bus import EventBus
from core.events import InvoiceCreated, InvoiceDeleted, InvoiceStatusChanged
from core.lifecycle import (
    initial_timestamps,
    is_overdue_candidate,
    payment_status_for,
    plan_transition,
)
from core.models import (
    Invoice,
    InvoiceCreate,
    InvoiceStatus,
    InvoiceUpdate,
    Settings,
)
from core.numbering import InvoiceNumberer
from core.services.settings_service import SettingsService
from core.store import INVOICES, Document, DocumentStore, Query
from core.sync import Subscription, subscribe_query
from core.totals import compute_totals
from utils.clock import Clock, SystemClock
from utils.user_context import AuthContext

logger = logging.getLogger(__name__)

# Sequence values tried before giving up on finding an unused number
_MAX_NUMBER_ATTEMPTS = 50


class OverdueSweepResult(BaseModel):
    """Outcome of sweep_overdue."""

    invoices: list[Invoice] = Field(default_factory=list)  # Everything overdue after the sweep
    transitioned: list[str] = Field(default_factory=list)  # Ids moved to overdue by this sweep
    failures: dict[str, str] = Field(default_factory=dict)  # Invoice id -> error message


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        store: DocumentStore,
        event_bus: EventBus,
        clock: Clock | None = None,
        config: InvoicerConfig | None = None,
        numberer: InvoiceNumberer | None = None,
        settings: SettingsService | None = None,
    ):
        self.store = store
        self.event_bus = event_bus
        self.clock = clock or SystemClock()
        self.config = config or InvoicerConfig()
        self.numberer = numberer or InvoiceNumberer(store, self.clock, self.config)
        self.settings = settings

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _to_invoice(self, doc: Document) -> Invoice:
        """Parse a stored document, filling defaults and recomputing totals."""
        invoice = Invoice.model_validate({**doc.data, "id": doc.id})
        totals = compute_totals(
            invoice.items, invoice.tax_rate, invoice.discount_type, invoice.discount_value
        )
        return invoice.model_copy(update=totals.model_dump())

    def _owner_query(self, owner_id: str, **where: Any) -> Query:
        return Query(
            INVOICES,
            where={"owner_id": owner_id, **where},
            order_by="created_at",
            descending=True,
        )

    def _load_owned(self, invoice_id: str, owner_id: str, action: str) -> tuple[Document, Invoice]:
        """
        Fetch an invoice the caller is about to change.

        Raises:
            NotFoundError: No such invoice
            UnauthorizedError: Owned by someone else
        """
        doc = store_call("load invoice", self.store.get, INVOICES, invoice_id)
        if doc is None:
            raise NotFoundError("invoice", invoice_id)
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("invoice", action)
        return doc, self._to_invoice(doc)

    def _owner_settings(self, owner_id: str) -> Settings | None:
        if self.settings is None:
            return None
        return self.settings.get(owner_id)

    def _number_prefix(self, owner_id: str) -> str | None:
        """Owner's number prefix; None means the configured one."""
        try:
            settings = self._owner_settings(owner_id)
        except OperationFailedError:
            # Numbering degrades instead of failing
            return None
        return settings.invoice_prefix if settings else None

    def _number_taken(self, owner_id: str, invoice_number: str, exclude_id: str | None = None) -> bool:
        docs = store_call(
            "check invoice number",
            self.store.query,
            Query(INVOICES, where={"owner_id": owner_id, "invoice_number": invoice_number}, limit=2),
        )
        return any(doc.id != exclude_id for doc in docs)

    def _ensure_number_free(self, owner_id: str, invoice_number: str, exclude_id: str | None = None) -> None:
        if self._number_taken(owner_id, invoice_number, exclude_id):
            raise DuplicateInvoiceNumberError(invoice_number)
        store_call(
            "reserve invoice number",
            self.numberer.reserve,
            owner_id,
            invoice_number,
            self._number_prefix(owner_id),
        )

    def _allocate_number(self, owner_id: str) -> str:
        """Next number from the sequence, skipping any the owner already uses."""
        prefix = self._number_prefix(owner_id)
        for _ in range(_MAX_NUMBER_ATTEMPTS):
            number = self.numberer.next_number(owner_id, prefix)
            if not self._number_taken(owner_id, number):
                return number
            logger.warning(f"Invoice number {number} already used by owner {owner_id}, skipping")
        raise DuplicateInvoiceNumberError(number)

    def _write(self, invoice_id: str, changes: dict[str, Any], operation: str) -> None:
        updated = store_call(operation, self.store.update, INVOICES, invoice_id, changes)
        if not updated:
            # Deleted between our read and our write
            raise NotFoundError("invoice", invoice_id)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate, owner_id: str) -> Invoice:
        """
        Create an invoice.

        Args:
            data: Invoice creation data. A missing invoice_number is assigned
                from the owner's sequence.
            owner_id: Caller's user id, stamped as the owner

        Returns:
            Created invoice with derived totals

        Raises:
            DuplicateInvoiceNumberError: invoice_number already used by this owner
            OperationFailedError: Store failure
        """
        now = self.clock.now()

        if data.invoice_number:
            self._ensure_number_free(owner_id, data.invoice_number)
            invoice_number = data.invoice_number
        else:
            invoice_number = self._allocate_number(owner_id)

        totals = compute_totals(data.items, data.tax_rate, data.discount_type, data.discount_value)

        fields: dict[str, Any] = data.model_dump()
        if "template_id" not in data.model_fields_set:
            settings = self._owner_settings(owner_id)
            fields["template_id"] = settings.default_template if settings else self.config.default_template
        fields.update(totals.model_dump())
        fields.update(initial_timestamps(data.status, now))
        fields.update(
            owner_id=owner_id,
            invoice_number=invoice_number,
            payment_status=payment_status_for(data.status),
            created_at=now,
            updated_at=now,
        )
        document = to_document(fields)

        invoice_id = store_call("create invoice", self.store.create, INVOICES, document)
        invoice = self._to_invoice(Document(invoice_id, document))
        logger.info(f"Created invoice {invoice.invoice_number} ({invoice_id}) for owner {owner_id}")

        self.event_bus.publish(InvoiceCreated.create(invoice, now))
        return invoice

    def get(self, invoice_id: str, owner_id: str) -> Invoice | None:
        """
        Get an invoice by id.

        Returns:
            Invoice, or None if it does not exist

        Raises:
            UnauthorizedError: Invoice exists but belongs to another owner
        """
        doc = store_call("load invoice", self.store.get, INVOICES, invoice_id)
        if doc is None:
            return None
        if doc.data.get("owner_id") != owner_id:
            raise UnauthorizedError("invoice", "access")
        return self._to_invoice(doc)

    def update(self, invoice_id: str, patch: InvoiceUpdate, owner_id: str) -> Invoice:
        """
        Merge the fields set on patch into the invoice.

        Fields not set on the patch are left as stored. Totals are
        recomputed from the merged state and updated_at is refreshed.

        Raises:
            NotFoundError, UnauthorizedError, DuplicateInvoiceNumberError,
            ValidationFailure: due date before issue date after the merge
        """
        doc, current = self._load_owned(invoice_id, owner_id, "update")

        changes = patch.changes()
        if not changes:
            return current

        new_number = changes.get("invoice_number")
        if new_number and new_number != current.invoice_number:
            self._ensure_number_free(owner_id, new_number, exclude_id=invoice_id)

        merged = self._to_invoice(Document(invoice_id, {**doc.data, **changes}))
        if merged.issue_date and merged.due_date and merged.due_date < merged.issue_date:
            raise ValidationFailure("due_date cannot be earlier than issue_date")

        changes.update(merged.model_dump(include={"subtotal", "tax_amount", "discount_amount", "total"}))
        changes["updated_at"] = stamp(self.clock.now())

        self._write(invoice_id, changes, "update invoice")
        return self._to_invoice(Document(invoice_id, {**doc.data, **changes}))

    def list_by_owner(self, owner_id: str) -> list[Invoice]:
        """All of the owner's invoices, newest first."""
        docs = store_call("list invoices", self.store.query, self._owner_query(owner_id))
        return [self._to_invoice(doc) for doc in docs]

    def list_recent(self, owner_id: str, limit: int | None = None) -> list[Invoice]:
        """The owner's newest invoices. limit=None uses the configured default."""
        if limit is None:
            limit = self.config.recent_invoice_limit
        query = Query(
            INVOICES,
            where={"owner_id": owner_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        docs = store_call("list recent invoices", self.store.query, query)
        return [self._to_invoice(doc) for doc in docs]

    def list_by_status(self, owner_id: str, status: InvoiceStatus) -> list[Invoice]:
        query = self._owner_query(owner_id, status=InvoiceStatus(status).value)
        docs = store_call("list invoices", self.store.query, query)
        return [self._to_invoice(doc) for doc in docs]

    def list_all(self, auth: AuthContext) -> list[Invoice]:
        """
        Every invoice across owners, newest first. Admins only.

        Raises:
            UnauthorizedError: Caller is not an admin
        """
        if not auth.is_admin:
            raise UnauthorizedError("invoice", "list")
        query = Query(INVOICES, order_by="created_at", descending=True)
        docs = store_call("list invoices", self.store.query, query)
        return [self._to_invoice(doc) for doc in docs]

    def delete(self, invoice_id: str, owner_id: str) -> None:
        """
        Delete an invoice.

        Raises:
            NotFoundError, UnauthorizedError
        """
        _, invoice = self._load_owned(invoice_id, owner_id, "delete")

        deleted = store_call("delete invoice", self.store.delete, INVOICES, invoice_id)
        if not deleted:
            raise NotFoundError("invoice", invoice_id)
        logger.info(f"Deleted invoice {invoice.invoice_number} ({invoice_id})")

        self.event_bus.publish(InvoiceDeleted.create(invoice, self.clock.now()))

    def duplicate(self, invoice_id: str, owner_id: str) -> Invoice:
        """
        Copy an invoice into a new draft.

        The copy gets a fresh number, today's issue date, a due date the
        owner's payment terms out and no lifecycle timestamps.
        """
        _, source = self._load_owned(invoice_id, owner_id, "duplicate")
        today = self.clock.today()

        data = InvoiceCreate(
            **source.model_dump(include=set(InvoiceCreate.model_fields) - {
                "invoice_number", "issue_date", "due_date", "status",
            }),
            issue_date=today,
            due_date=today + timedelta(days=self._payment_terms(owner_id)),
            status=InvoiceStatus.DRAFT,
        )
        return self.create(data, owner_id)

    def _payment_terms(self, owner_id: str) -> int:
        settings = self._owner_settings(owner_id)
        return settings.default_payment_terms if settings else self.config.default_payment_terms_days

    def new_invoice_defaults(self, owner_id: str) -> InvoiceCreate:
        """
        Pre-filled data for a new invoice form.

        Sender, tax rate, payment terms and template come from the owner's
        settings. The number is peeked, not allocated; create() assigns
        the real one when the form is saved without a number.
        """
        settings = self._owner_settings(owner_id) or Settings(
            owner_id=owner_id,
            default_tax_rate=0,
            default_payment_terms=self.config.default_payment_terms_days,
            invoice_prefix=self.config.invoice_number_prefix,
            default_template=self.config.default_template,
        )
        today = self.clock.today()
        return InvoiceCreate(
            invoice_number=self.peek_number(owner_id),
            issue_date=today,
            due_date=today + timedelta(days=settings.default_payment_terms),
            sender=settings.company_details,
            tax_rate=settings.default_tax_rate,
            template_id=settings.default_template,
        )

    # -------------------------------------------------------------------------
    # Numbering
    # -------------------------------------------------------------------------

    def next_number(self, owner_id: str) -> str:
        """Allocate the owner's next invoice number."""
        return self.numberer.next_number(owner_id, self._number_prefix(owner_id))

    def peek_number(self, owner_id: str) -> str:
        """The number the next create would get, without allocating it."""
        return self.numberer.peek_number(owner_id, self._number_prefix(owner_id))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def update_status(
        self,
        invoice_id: str,
        status: InvoiceStatus,
        owner_id: str,
        allow_reversion: bool = False,
    ) -> Invoice:
        """
        Move an invoice to a new status.

        Re-applying the current status is a no-op and keeps existing
        sent_at/paid_at.

        Raises:
            NotFoundError, UnauthorizedError
            InvalidTransitionError: Not allowed from the current status
        """
        target = InvoiceStatus(status)
        doc, current = self._load_owned(invoice_id, owner_id, "update")
        now = self.clock.now()

        plan = plan_transition(current, target, now, allow_reversion=allow_reversion)
        if current.status == target and set(plan) == {"status", "payment_status"}:
            return current

        changes = to_document(plan)
        changes["updated_at"] = stamp(now)
        self._write(invoice_id, changes, "update invoice status")

        updated = self._to_invoice(Document(invoice_id, {**doc.data, **changes}))
        if current.status != target:
            logger.info(f"Invoice {invoice_id} status {current.status.value} -> {target.value}")
            self.event_bus.publish(InvoiceStatusChanged.create(updated, current.status.value, now))
        return updated

    def mark_sent(self, invoice_id: str, owner_id: str) -> Invoice:
        return self.update_status(invoice_id, InvoiceStatus.SENT, owner_id)

    def mark_paid(self, invoice_id: str, owner_id: str) -> Invoice:
        return self.update_status(invoice_id, InvoiceStatus.PAID, owner_id)

    def mark_overdue(self, invoice_id: str, owner_id: str) -> Invoice:
        return self.update_status(invoice_id, InvoiceStatus.OVERDUE, owner_id)

    def sweep_overdue(self, owner_id: str) -> OverdueSweepResult:
        """
        Move the owner's past-due sent invoices to overdue.

        Best effort: a failure on one invoice is logged and recorded in
        failures, and the sweep carries on with the rest.

        Returns:
            OverdueSweepResult with every invoice overdue after the sweep
        """
        today = self.clock.today()
        result = OverdueSweepResult()

        for invoice in self.list_by_owner(owner_id):
            if not is_overdue_candidate(invoice, today):
                continue
            if invoice.status == InvoiceStatus.OVERDUE:
                result.invoices.append(invoice)
                continue
            try:
                updated = self.mark_overdue(invoice.id, owner_id)
            except InvoicerError as e:
                logger.exception(f"Overdue sweep could not update invoice {invoice.id}")
                result.failures[invoice.id] = str(e)
                continue
            result.invoices.append(updated)
            result.transitioned.append(updated.id)

        if result.transitioned or result.failures:
            logger.info(
                f"Overdue sweep for owner {owner_id}: "
                f"{len(result.transitioned)} moved, {len(result.failures)} failed"
            )
        return result

    def list_overdue(self, owner_id: str) -> list[Invoice]:
        """Sweep, then return everything overdue."""
        return self.sweep_overdue(owner_id).invoices

    # -------------------------------------------------------------------------
    # Sync
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        owner_id: str,
        on_change: Callable[[list[Invoice]], None],
    ) -> Subscription[Invoice]:
        """
        Push the owner's invoice list (newest first) to on_change now and
        after every change.

        Returns:
            Subscription; call unsubscribe() (or the subscription itself) to stop
        """
        return store_call(
            "subscribe to invoices",
            subscribe_query,
            self.store,
            self._owner_query(owner_id),
            self._to_invoice,
            on_change,
        )
