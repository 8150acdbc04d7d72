"""Per-user application settings.

One settings document per owner, keyed by the owner id. Only the fields a
user has changed are stored; everything else reads as the default.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from core.models.invoice import TemplateId
from core.models.party import Party


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class NotificationSettings(BaseModel):
    """Which reminders the user wants."""

    email_reminders: bool = True
    overdue_alerts: bool = True
    payment_confirmations: bool = True


class SettingsUpdate(BaseModel):
    """
    Patch for a user's settings. Only fields explicitly set are written.

    company_details and notifications replace the stored value whole; use
    SettingsService.update_company_details / update_notifications to change
    single fields inside them.
    """

    company_details: Party | None = None
    default_tax_rate: float | None = Field(None, ge=0, le=100)
    default_payment_terms: int | None = Field(None, ge=0, le=365)
    invoice_prefix: str | None = Field(None, min_length=1, max_length=20)
    currency: str | None = Field(None, min_length=3, max_length=3)
    default_template: TemplateId | None = None
    logo_url: str | None = Field(None, max_length=2000)
    theme: Theme | None = None
    notifications: NotificationSettings | None = None

    def changes(self) -> dict:
        """Explicitly set fields, JSON-ready. Only logo_url may be cleared with null."""
        return {
            key: value
            for key, value in self.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key == "logo_url"
        }


class Settings(BaseModel):
    """A user's settings with defaults filled in."""

    owner_id: str
    company_details: Party = Field(default_factory=Party)
    default_tax_rate: float = 15
    default_payment_terms: int = 30  # Days from issue to due date
    invoice_prefix: str = "INV-"
    currency: str = "ZAR"
    default_template: TemplateId = TemplateId.CLASSIC
    logo_url: str | None = None
    theme: Theme = Theme.LIGHT
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    created_at: datetime | None = None
    updated_at: datetime | None = None
