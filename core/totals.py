"""Derived invoice amounts.

    subtotal        = sum(quantity * unit_price)
    tax_amount      = subtotal * tax_rate / 100
    discount_amount = subtotal * value / 100   (percentage)
                    = value                    (fixed)
    total           = subtotal + tax_amount - discount_amount

Full float precision, no rounding. A fixed discount is taken as-is, even
when it exceeds the subtotal.
"""

from typing import Iterable

from pydantic import BaseModel

from core.models.invoice import DiscountType
from core.models.line_item import LineItem


class InvoiceTotals(BaseModel):
    """The four derived monetary fields of an invoice."""

    subtotal: float
    tax_amount: float
    discount_amount: float
    total: float

    model_config = {"frozen": True}


def compute_totals(
    items: Iterable[LineItem],
    tax_rate: float,
    discount_type: DiscountType | str,
    discount_value: float,
) -> InvoiceTotals:
    """
    Recompute subtotal, tax, discount and total.

    Args:
        items: Line items in invoice order
        tax_rate: Percentage, e.g. 15 for 15%
        discount_type: percentage or fixed
        discount_value: Percentage or absolute amount depending on type

    Returns:
        InvoiceTotals
    """
    subtotal = sum((item.quantity * item.unit_price for item in items), 0.0)
    tax_amount = subtotal * (tax_rate / 100)

    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        discount_amount = subtotal * (discount_value / 100)
    else:
        discount_amount = float(discount_value)

    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total=subtotal + tax_amount - discount_amount,
    )
