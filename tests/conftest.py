"""Shared test fixtures for the invoicer test suite."""

import pytest
from datetime import date, datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
# override=True ensures .env takes precedence over shell env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from api.app import build_services
from clients.memory_store import InMemoryDocumentStore
from core.config import InvoicerConfig
from core.models import InvoiceCreate, LineItem, Party
from utils.clock import FrozenClock
from utils.user_context import clear_current_auth


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

# Primary test owner - use for single-user tests
OWNER_A = "user-a"

# Secondary test owner - use for isolation tests
OWNER_B = "user-b"

# Frozen "now" for every service test
NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


# =============================================================================
# USER CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean user context before and after each test."""
    clear_current_auth()
    yield
    clear_current_auth()


@pytest.fixture
def owner_id() -> str:
    return OWNER_A


@pytest.fixture
def other_owner_id() -> str:
    return OWNER_B


# =============================================================================
# STORE, CLOCK AND SERVICES
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW, monotonic_start_ns=1_700_000_123_456)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def config() -> InvoicerConfig:
    return InvoicerConfig()


@pytest.fixture
def services(store, clock, config) -> dict:
    return build_services(store, clock, config)


@pytest.fixture
def event_bus(services):
    return services["event_bus"]


@pytest.fixture
def invoice_service(services):
    return services["invoice"]


@pytest.fixture
def customer_service(services):
    return services["customer"]


@pytest.fixture
def product_service(services):
    return services["product"]


@pytest.fixture
def product_template_service(services):
    return services["product_template"]


@pytest.fixture
def settings_service(services):
    return services["settings"]


@pytest.fixture
def dashboard_service(services):
    return services["dashboard"]


# =============================================================================
# DATA FACTORIES
# =============================================================================


def make_invoice_data(**overrides) -> InvoiceCreate:
    """
    InvoiceCreate with two items: 2 x 50 + 1 x 25 = 125 subtotal.

    Issue date is TODAY, due in 30 days; override any field.
    """
    fields = {
        "issue_date": TODAY,
        "due_date": date(2024, 4, 14),
        "sender": Party(name="Acme Studio", email="billing@acme.test"),
        "recipient": Party(name="Globex", address="1 Globex Way"),
        "items": [
            LineItem(id="item-1", description="Design", quantity=2, unit_price=50),
            LineItem(id="item-2", description="Hosting", quantity=1, unit_price=25),
        ],
        "tax_rate": 10,
    }
    fields.update(overrides)
    return InvoiceCreate(**fields)


@pytest.fixture
def invoice_data() -> InvoiceCreate:
    return make_invoice_data()


@pytest.fixture
def make_invoice():
    """Factory fixture: make_invoice(**overrides) -> InvoiceCreate."""
    return make_invoice_data
