"""
Domain events for invoices.

Immutable event objects describing something that already happened.
Services publish them after the store write; handlers react without the
publisher knowing who's listening.

Events carry the full domain object so handlers don't need to re-fetch
state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.clock import now_utc


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for all domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


def _timing(occurred_at: datetime | None) -> dict[str, datetime]:
    # Publishers pass their injected clock's time; otherwise the wall clock
    return {} if occurred_at is None else {"occurred_at": occurred_at}


# =============================================================================
# INVOICE EVENTS
# =============================================================================


@dataclass(frozen=True)
class InvoiceEvent(DomainEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice; Any avoids a models import cycle


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A new invoice was persisted."""

    @classmethod
    def create(cls, invoice: Any, occurred_at: datetime | None = None) -> "InvoiceCreated":
        return cls(invoice=invoice, **_timing(occurred_at))


@dataclass(frozen=True)
class InvoiceDeleted(InvoiceEvent):
    """An invoice was deleted. Carries the invoice as it was before deletion."""

    @classmethod
    def create(cls, invoice: Any, occurred_at: datetime | None = None) -> "InvoiceDeleted":
        return cls(invoice=invoice, **_timing(occurred_at))


@dataclass(frozen=True)
class InvoiceStatusChanged(InvoiceEvent):
    """Invoice moved to a different lifecycle status."""
    previous_status: str = ""

    @classmethod
    def create(
        cls, invoice: Any, previous_status: str, occurred_at: datetime | None = None
    ) -> "InvoiceStatusChanged":
        return cls(invoice=invoice, previous_status=previous_status, **_timing(occurred_at))
