"""Customer (client) domain models."""

from datetime import datetime

from pydantic import BaseModel, Field, EmailStr


class CustomerCreate(BaseModel):
    """Data required to create a customer."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    address: str = Field("", max_length=1000)
    phone: str = Field("", max_length=50)
    tax_id: str | None = Field(None, max_length=50)


class CustomerUpdate(BaseModel):
    """
    Data that can be updated on a customer. All fields optional.

    The invoice aggregates are not here: only adjust_stats writes them.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    address: str | None = Field(None, max_length=1000)
    phone: str | None = Field(None, max_length=50)
    tax_id: str | None = Field(None, max_length=50)


class Customer(BaseModel):
    """Full customer entity as stored."""

    id: str
    owner_id: str
    name: str = ""
    email: str | None = None
    address: str = ""
    phone: str = ""
    tax_id: str | None = None
    total_invoices: int = 0
    total_amount: float = 0
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def display_name(self) -> str:
        """Human-readable name for display."""
        return self.name or "Unnamed Customer"
