"""Line item domain model.

Line items live inside their invoice document; there is no separate
collection. The id is generated by the caller and only has to be unique
within the invoice.
"""

from pydantic import BaseModel, Field


class LineItem(BaseModel):
    """One billable row on an invoice."""

    id: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    quantity: float = Field(1, ge=0)
    unit_price: float = Field(0, ge=0)

    @property
    def amount(self) -> float:
        """quantity x unit_price, full precision."""
        return self.quantity * self.unit_price


def check_unique_item_ids(items: list[LineItem] | None) -> None:
    """Raise ValueError if two items share an id."""
    if not items:
        return
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"Duplicate line item id '{item.id}'")
        seen.add(item.id)
