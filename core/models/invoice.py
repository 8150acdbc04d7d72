"""Invoice domain models.

Amounts are plain floats in currency units and are stored at full
precision. Round only for display (see display_totals).

The four derived fields (subtotal, tax_amount, discount_amount, total) are
never accepted from callers. InvoiceCreate and InvoiceUpdate do not have
them, and InvoiceService recomputes them before every write and after
every read.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from core.models.line_item import LineItem, check_unique_item_ids
from core.models.party import BankingDetails, Party
from utils.money import round_currency


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentStatus(str, Enum):
    """Payment view of the lifecycle, kept in step with InvoiceStatus."""

    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentType(str, Enum):
    """Billing cadence."""

    ONCE_OFF = "once-off"
    MONTHLY = "monthly"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class TemplateId(str, Enum):
    """Presentation template. Stored for the renderer, ignored by the core."""

    CLASSIC = "classic"
    MODERN = "modern"
    CREATIVE = "creative"
    WRITENOW = "writenow"
    PREMIUM = "premium"


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    issue_date: date
    due_date: date
    sender: Party = Field(default_factory=Party)
    recipient: Party = Field(default_factory=Party)
    customer_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    notes: str = Field("", max_length=5000)
    payment_type: PaymentType = PaymentType.ONCE_OFF
    tax_rate: float = Field(0, ge=0)  # Percentage: 15 = 15%
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: float = Field(0, ge=0)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    banking_details: BankingDetails | None = None
    include_banking_details: bool = False
    template_id: TemplateId = TemplateId.CLASSIC

    @model_validator(mode="after")
    def check_consistency(self) -> "InvoiceCreate":
        """Due date not before issue date, unique item ids, no overdue at birth."""
        if self.due_date < self.issue_date:
            raise ValueError("due_date cannot be earlier than issue_date")
        check_unique_item_ids(self.items)
        if self.status == InvoiceStatus.OVERDUE:
            raise ValueError("New invoices cannot start as overdue")
        return self


class InvoiceUpdate(BaseModel):
    """
    Patch for an invoice. Only fields explicitly set are written.

    Status is not patchable here; use the lifecycle operations.
    """

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    issue_date: date | None = None
    due_date: date | None = None
    sender: Party | None = None
    recipient: Party | None = None
    customer_id: str | None = None
    items: list[LineItem] | None = None
    notes: str | None = Field(None, max_length=5000)
    payment_type: PaymentType | None = None
    tax_rate: float | None = Field(None, ge=0)
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(None, ge=0)
    banking_details: BankingDetails | None = None
    include_banking_details: bool | None = None
    template_id: TemplateId | None = None

    @model_validator(mode="after")
    def check_items(self) -> "InvoiceUpdate":
        check_unique_item_ids(self.items)
        return self

    def changes(self) -> dict:
        """
        Explicitly set fields, JSON-ready, for a field-by-field merge.

        An explicit null only clears fields that may be empty
        (customer_id, banking_details); on other fields it is ignored.
        """
        return {
            key: value
            for key, value in self.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key in _CLEARABLE_FIELDS
        }


_CLEARABLE_FIELDS = {"customer_id", "banking_details"}


# Keys where a stored null means "use the default" (older or partial documents)
_DEFAULTED_FIELDS = {
    "sender", "recipient", "items", "notes", "payment_type",
    "tax_rate", "discount_type", "discount_value",
    "subtotal", "tax_amount", "discount_amount", "total",
    "status", "payment_status", "include_banking_details", "template_id",
}


class Invoice(BaseModel):
    """Full invoice entity as stored."""

    id: str
    owner_id: str
    invoice_number: str = ""
    issue_date: date | None = None
    due_date: date | None = None
    sender: Party = Field(default_factory=Party)
    recipient: Party = Field(default_factory=lambda: Party(name="Unknown Client"))
    customer_id: str | None = None
    items: list[LineItem] = Field(default_factory=list)
    notes: str = ""
    payment_type: PaymentType = PaymentType.ONCE_OFF
    tax_rate: float = 0
    discount_type: DiscountType = DiscountType.FIXED
    discount_value: float = 0
    subtotal: float = 0
    tax_amount: float = 0
    discount_amount: float = 0
    total: float = 0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    banking_details: BankingDetails | None = None
    include_banking_details: bool = False
    template_id: TemplateId = TemplateId.CLASSIC
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None
    paid_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def fill_defaults(cls, data):
        """Drop nulls on defaulted keys so older documents stay valid."""
        if isinstance(data, dict):
            return {
                k: v for k, v in data.items()
                if not (v is None and k in _DEFAULTED_FIELDS)
            }
        return data

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID

    def is_past_due(self, today: date) -> bool:
        """Due date strictly before today. Invoices without a due date never are."""
        return self.due_date is not None and self.due_date < today

    @property
    def display_totals(self) -> dict[str, Decimal]:
        """Derived amounts rounded half-even to cents, for presentation only."""
        return {
            "subtotal": round_currency(self.subtotal),
            "tax_amount": round_currency(self.tax_amount),
            "discount_amount": round_currency(self.discount_amount),
            "total": round_currency(self.total),
        }
