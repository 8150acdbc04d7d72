"""
Invoice status state machine.

    draft -> sent -> paid
               \\-> overdue -> paid

Same-status transitions are allowed and idempotent. Moving to overdue also
needs the due date to have passed. Anything else is rejected unless the
caller explicitly asks for a reversion.

sent_at and paid_at are stamped on the first entry into sent/paid and are
never cleared or overwritten, reversions included.
"""

from datetime import date, datetime
from typing import Any

from core.errors import InvalidTransitionError
from core.models import Invoice, InvoiceStatus, PaymentStatus

ALLOWED_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.PAID}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.OVERDUE}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.OVERDUE, InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.PAID}),
}

# Statuses the overdue sweep looks at
OVERDUE_CANDIDATES = frozenset({InvoiceStatus.SENT, InvoiceStatus.OVERDUE})

_PAYMENT_STATUS = {
    InvoiceStatus.DRAFT: PaymentStatus.UNPAID,
    InvoiceStatus.SENT: PaymentStatus.UNPAID,
    InvoiceStatus.OVERDUE: PaymentStatus.OVERDUE,
    InvoiceStatus.PAID: PaymentStatus.PAID,
}


def payment_status_for(status: InvoiceStatus) -> PaymentStatus:
    return _PAYMENT_STATUS[status]


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    """Whether the table allows current -> target (ignores due dates)."""
    return target in ALLOWED_TRANSITIONS[current]


def is_overdue_candidate(invoice: Invoice, today: date) -> bool:
    """Sent or already overdue, with a due date before today."""
    return invoice.status in OVERDUE_CANDIDATES and invoice.is_past_due(today)


def initial_timestamps(status: InvoiceStatus, now: datetime) -> dict[str, datetime | None]:
    """sent_at/paid_at for a record created directly in a later status."""
    return {
        "sent_at": now if status == InvoiceStatus.SENT else None,
        "paid_at": now if status == InvoiceStatus.PAID else None,
    }


def plan_transition(
    invoice: Invoice,
    target: InvoiceStatus,
    now: datetime,
    allow_reversion: bool = False,
) -> dict[str, Any]:
    """
    Work out the field changes for moving invoice to target.

    Args:
        invoice: Current state
        target: Desired status
        now: Transition time (used for first-time sent_at/paid_at)
        allow_reversion: Skip the transition table (caller-owned reversion rules)

    Returns:
        Fields to merge into the stored document. status and payment_status
        always; sent_at/paid_at only when stamped for the first time.

    Raises:
        InvalidTransitionError: Not allowed by the table, or overdue before the due date
    """
    current = invoice.status

    if not allow_reversion and not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)

    if target == InvoiceStatus.OVERDUE and not invoice.is_past_due(now.date()):
        raise InvalidTransitionError(current.value, target.value, "due date has not passed")

    changes: dict[str, Any] = {
        "status": target,
        "payment_status": payment_status_for(target),
    }
    if target == InvoiceStatus.SENT and invoice.sent_at is None:
        changes["sent_at"] = now
    if target == InvoiceStatus.PAID and invoice.paid_at is None:
        changes["paid_at"] = now
    return changes
