"""Dashboard summary over an owner's invoices."""

from core.config import InvoicerConfig
from core.models import DashboardStats, InvoiceStatus, PaymentStatus
from core.services.invoice_service import InvoiceService


class DashboardService:
    """Computes DashboardStats from the owner's current invoices."""

    def __init__(self, invoice_service: InvoiceService, config: InvoicerConfig | None = None):
        self.invoice_service = invoice_service
        self.config = config or InvoicerConfig()

    def stats(self, owner_id: str) -> DashboardStats:
        """
        Summarize the owner's invoices.

        Revenue counts paid invoices, pending counts unpaid ones (drafts
        included) and overdue counts invoices whose status is overdue.
        Amounts are full-precision totals.
        """
        invoices = self.invoice_service.list_by_owner(owner_id)

        paid = [inv for inv in invoices if inv.payment_status == PaymentStatus.PAID]
        unpaid = [inv for inv in invoices if inv.payment_status == PaymentStatus.UNPAID]
        overdue = [inv for inv in invoices if inv.status == InvoiceStatus.OVERDUE]

        return DashboardStats(
            total_invoices=len(invoices),
            total_revenue=sum((inv.total for inv in paid), 0.0),
            pending_amount=sum((inv.total for inv in unpaid), 0.0),
            overdue_amount=sum((inv.total for inv in overdue), 0.0),
            paid_invoices=len(paid),
            unpaid_invoices=len(unpaid),
            recent_invoices=invoices[:self.config.recent_invoice_limit],
        )
