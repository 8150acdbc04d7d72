"""Core domain models."""

from core.models.party import Party, BankingDetails
from core.models.line_item import LineItem
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate,
    InvoiceStatus, PaymentStatus, PaymentType, DiscountType, TemplateId,
)
from core.models.customer import Customer, CustomerCreate, CustomerUpdate
from core.models.product import (
    Product, ProductCreate, ProductUpdate,
    ProductTemplate, ProductTemplateCreate, ProductTemplateUpdate,
)
from core.models.settings import NotificationSettings, Settings, SettingsUpdate, Theme
from core.models.dashboard import DashboardStats

__all__ = [
    # Value objects
    "Party", "BankingDetails", "LineItem",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate",
    "InvoiceStatus", "PaymentStatus", "PaymentType", "DiscountType", "TemplateId",
    # Customer
    "Customer", "CustomerCreate", "CustomerUpdate",
    # Products
    "Product", "ProductCreate", "ProductUpdate",
    "ProductTemplate", "ProductTemplateCreate", "ProductTemplateUpdate",
    # Settings
    "Settings", "SettingsUpdate", "NotificationSettings", "Theme",
    # Dashboard
    "DashboardStats",
]
