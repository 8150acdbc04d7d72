"""
Handlers keeping customer invoice aggregates in step with invoices.

On InvoiceCreated / InvoiceDeleted for an invoice with a customer_id, counts
the invoice into (or out of) the customer's total_invoices and total_amount.

Errors propagate to the EventBus, which logs them; the invoice write has
already happened and is not unwound. Aggregates may drift in that case.
Edits to an invoice total after creation are not reflected either.
"""

import logging
from typing import Callable

from core.event_bus import EventBus
from core.events import InvoiceCreated, InvoiceDeleted

logger = logging.getLogger(__name__)


def handle_invoice_created(customer_service) -> Callable:
    """
    Factory that returns an InvoiceCreated handler.

    Args:
        customer_service: CustomerService instance

    Returns:
        Handler callable that increments the customer's aggregates
    """

    def handler(event: InvoiceCreated):
        invoice = event.invoice
        if not invoice.customer_id:
            return
        customer_service.adjust_stats(invoice.customer_id, invoice.owner_id, invoice.total, is_increment=True)

    return handler


def handle_invoice_deleted(customer_service) -> Callable:
    """Factory that returns an InvoiceDeleted handler (decrements aggregates)."""

    def handler(event: InvoiceDeleted):
        invoice = event.invoice
        if not invoice.customer_id:
            return
        customer_service.adjust_stats(invoice.customer_id, invoice.owner_id, invoice.total, is_increment=False)

    return handler


def register_customer_stats_handlers(event_bus: EventBus, customer_service) -> None:
    """Subscribe both aggregate handlers on event_bus."""
    event_bus.subscribe(InvoiceCreated, handle_invoice_created(customer_service))
    event_bus.subscribe(InvoiceDeleted, handle_invoice_deleted(customer_service))
    logger.debug("Registered customer stats handlers")
