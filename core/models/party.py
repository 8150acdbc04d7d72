"""Sender/recipient and banking value objects embedded in invoices."""

from pydantic import BaseModel, Field


class Party(BaseModel):
    """Company or person on either side of an invoice."""

    name: str = Field("", max_length=255)
    address: str = Field("", max_length=1000)
    email: str = Field("", max_length=255)
    phone: str = Field("", max_length=50)
    vat_number: str | None = Field(None, max_length=50)
    client_reference: str | None = Field(None, max_length=100)
    contact_number: str | None = Field(None, max_length=50)


class BankingDetails(BaseModel):
    """Where the recipient should pay."""

    bank_name: str = Field(..., max_length=255)
    account_name: str = Field(..., max_length=255)
    account_number: str = Field(..., max_length=64)
    routing_number: str = Field(..., max_length=64)  # Sort code or routing number
    swift: str | None = Field(None, max_length=32)
    reference: str | None = Field(None, max_length=100)
