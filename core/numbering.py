"""
Sequential invoice numbers per owner.

Numbers look like INV-001, INV-002, ... INV-999, INV-1000. The suffix is
allocated from a per-owner counter document that the store advances
atomically. It is seeded from the owner's most recently created invoice,
and reserve() moves it past any number typed in by hand.

The prefix defaults to InvoicerConfig.invoice_number_prefix; callers may
pass a per-owner prefix. The counter is per owner, not per prefix, so a
changed prefix continues the same sequence.

If the store is unreachable a time-derived number is returned instead of
failing the caller. Such numbers are not sequential and may collide; they
are logged as degraded.
"""

import logging
import re

from core.config import InvoicerConfig
from core.errors import StoreUnavailableError
from core.store import COUNTERS, INVOICES, DocumentStore, Query
from utils.clock import Clock

logger = logging.getLogger(__name__)


class InvoiceNumberer:
    """Allocates invoice numbers for an owner."""

    def __init__(self, store: DocumentStore, clock: Clock, config: InvoicerConfig | None = None):
        self.store = store
        self.clock = clock
        self.config = config or InvoicerConfig()

    def _counter_id(self, owner_id: str) -> str:
        return f"invoice-number:{owner_id}"

    def _prefix(self, prefix: str | None) -> str:
        return prefix or self.config.invoice_number_prefix

    def parse_suffix(self, invoice_number: str | None, prefix: str | None = None) -> int | None:
        """Numeric suffix of a number like INV-042, None if it has none."""
        if not invoice_number:
            return None
        match = re.search(re.escape(self._prefix(prefix)) + r"(\d+)", invoice_number)
        if match is None:
            return None
        return int(match.group(1))

    def format_number(self, sequence: int, prefix: str | None = None) -> str:
        width = self.config.invoice_number_width
        return f"{self._prefix(prefix)}{sequence:0{width}d}"

    def _latest_suffix(self, owner_id: str, prefix: str | None) -> int:
        docs = self.store.query(Query(
            INVOICES,
            where={"owner_id": owner_id},
            order_by="created_at",
            descending=True,
            limit=1,
        ))
        if not docs:
            return 0
        return self.parse_suffix(docs[0].data.get("invoice_number"), prefix) or 0

    def _current(self, owner_id: str) -> int:
        counter = self.store.get(COUNTERS, self._counter_id(owner_id))
        return counter.data.get("value", 0) if counter else 0

    def _degraded_number(self, owner_id: str, prefix: str | None) -> str:
        width = self.config.invoice_number_width
        digits = str(self.clock.monotonic_ns())[-width:].zfill(width)
        number = f"{self._prefix(prefix)}{digits}"
        logger.warning(
            f"Store unavailable while numbering for owner {owner_id}; "
            f"issued degraded non-sequential number {number}"
        )
        return number

    def next_number(self, owner_id: str, prefix: str | None = None) -> str:
        """
        Allocate the next invoice number. Consumes a counter value.

        Args:
            owner_id: Owner the number belongs to
            prefix: Owner's number prefix, None for the configured one

        Returns:
            e.g. "INV-001" for a new owner, "INV-043" after INV-042
        """
        try:
            floor = self._latest_suffix(owner_id, prefix)
            sequence = self.store.increment(COUNTERS, self._counter_id(owner_id), floor)
        except StoreUnavailableError:
            return self._degraded_number(owner_id, prefix)
        return self.format_number(sequence, prefix)

    def reserve(self, owner_id: str, invoice_number: str, prefix: str | None = None) -> None:
        """
        Advance the counter past a number chosen by hand.

        After reserving INV-007, next_number returns INV-008 or later.
        Numbers without the prefix (or below the counter) change nothing.

        Raises:
            StoreUnavailableError: Store unreachable
        """
        suffix = self.parse_suffix(invoice_number, prefix)
        if suffix is None:
            return
        if suffix > self._current(owner_id):
            self.store.increment(COUNTERS, self._counter_id(owner_id), suffix - 1)

    def peek_number(self, owner_id: str, prefix: str | None = None) -> str:
        """
        The number next_number would return right now, without allocating it.

        For pre-filling forms. Another caller may take it before the form
        is saved.
        """
        try:
            floor = self._latest_suffix(owner_id, prefix)
            current = self._current(owner_id)
        except StoreUnavailableError:
            return self._degraded_number(owner_id, prefix)
        return self.format_number(max(current, floor) + 1, prefix)
