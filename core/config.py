"""Invoice engine configuration."""

from pydantic import BaseModel, Field

from core.models.invoice import TemplateId


class InvoicerConfig(BaseModel):
    """
    Tunables for numbering, duplication and dashboards.

    Defaults match the behavior users already rely on (INV-001 style
    numbers, 30 day terms).
    """

    # Numbering
    invoice_number_prefix: str = Field(
        default="INV-",
        description="Literal prefix before the numeric suffix",
        min_length=1,
        max_length=20,
    )
    invoice_number_width: int = Field(
        default=3,
        description="Minimum zero-padded width of the numeric suffix",
        ge=1,
        le=12,
    )

    # Duplication
    default_payment_terms_days: int = Field(
        default=30,
        description="Due date offset applied to duplicated invoices",
        ge=0,
        le=365,
    )

    # Dashboard
    recent_invoice_limit: int = Field(
        default=5,
        description="How many invoices the dashboard lists as recent",
        ge=1,
        le=100,
    )

    default_template: TemplateId = Field(
        default=TemplateId.CLASSIC,
        description="Template used when a caller does not pick one",
    )
