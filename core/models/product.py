"""Product catalog and product template models.

Products are reusable priced items a user picks from when filling in an
invoice. A product template is a named bundle of line items that can be
dropped into an invoice in one go.
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from core.models.line_item import LineItem, check_unique_item_ids


class ProductCreate(BaseModel):
    """Data required to create a product."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=1000)
    unit_price: float = Field(0, ge=0)
    category: str = Field("", max_length=100)
    tax_rate: float = Field(0, ge=0, le=100)  # Percentage: 15 = 15%


class ProductUpdate(BaseModel):
    """Data that can be updated on a product. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    unit_price: float | None = Field(None, ge=0)
    category: str | None = Field(None, max_length=100)
    tax_rate: float | None = Field(None, ge=0, le=100)


class Product(BaseModel):
    """Full product entity as stored."""

    id: str
    owner_id: str
    name: str = ""
    description: str = ""
    unit_price: float = 0
    category: str = ""
    tax_rate: float = 0
    created_at: datetime
    updated_at: datetime | None = None


def items_total(items: list[LineItem]) -> float:
    """Sum of quantity x unit_price, full precision."""
    return sum(item.amount for item in items)


class ProductTemplateCreate(BaseModel):
    """Data required to create a product template."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=1000)
    items: list[LineItem] = Field(default_factory=list)
    category: str = Field("", max_length=100)

    @model_validator(mode="after")
    def check_items(self) -> "ProductTemplateCreate":
        check_unique_item_ids(self.items)
        return self


class ProductTemplateUpdate(BaseModel):
    """Patch for a product template. total_price follows items."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    items: list[LineItem] | None = None
    category: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def check_items(self) -> "ProductTemplateUpdate":
        check_unique_item_ids(self.items)
        return self


class ProductTemplate(BaseModel):
    """Full product template entity as stored."""

    id: str
    owner_id: str
    name: str = ""
    description: str = ""
    items: list[LineItem] = Field(default_factory=list)
    category: str = ""
    total_price: float = 0
    created_at: datetime
    updated_at: datetime | None = None
