"""Dashboard summary model."""

from pydantic import BaseModel

from core.models.invoice import Invoice


class DashboardStats(BaseModel):
    """Per-owner invoice summary."""

    total_invoices: int
    total_revenue: float
    pending_amount: float
    overdue_amount: float
    paid_invoices: int
    unpaid_invoices: int
    recent_invoices: list[Invoice]
