"""Application assembly: services, routers, middleware."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from api.actions import create_actions_router
from api.admin import create_admin_router
from api.base import respond
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.security_middleware import AuthMiddleware
from auth.session import SessionReader
from core.config import InvoicerConfig
from core.event_bus import EventBus
from core.handlers.customer_stats_handler import register_customer_stats_handlers
from core.services.customer_service import CustomerService
from core.services.dashboard_service import DashboardService
from core.services.invoice_service import InvoiceService
from core.services.product_service import ProductService
from core.services.product_template_service import ProductTemplateService
from core.services.settings_service import SettingsService
from core.store import DocumentStore
from utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def build_services(
    store: DocumentStore,
    clock: Clock | None = None,
    config: InvoicerConfig | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    """
    Wire the services over one store and one event bus.

    Returns:
        {"invoice": InvoiceService, "customer": CustomerService,
         "product": ProductService, "product_template": ProductTemplateService,
         "settings": SettingsService, "dashboard": DashboardService,
         "event_bus": EventBus}
    """
    clock = clock or SystemClock()
    config = config or InvoicerConfig()
    event_bus = event_bus or EventBus()

    settings_service = SettingsService(store, clock, config)
    customer_service = CustomerService(store, clock)
    invoice_service = InvoiceService(store, event_bus, clock, config, settings=settings_service)
    dashboard_service = DashboardService(invoice_service, config)

    register_customer_stats_handlers(event_bus, customer_service)

    return {
        "invoice": invoice_service,
        "customer": customer_service,
        "product": ProductService(store, clock),
        "product_template": ProductTemplateService(store, clock),
        "settings": settings_service,
        "dashboard": dashboard_service,
        "event_bus": event_bus,
    }


def create_app(services: dict, session_reader: SessionReader, lifespan=None) -> FastAPI:
    """FastAPI app with auth middleware, error handlers and all routes."""
    app = FastAPI(title="Invoicer", lifespan=lifespan)
    app.add_middleware(AuthMiddleware, session_reader=session_reader)
    # Must stay outermost: 401 responses from auth carry the request id
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    app.include_router(create_admin_router(services), prefix="/api")

    @app.get("/health")
    async def health(request: Request):
        return respond(request, {"status": "ok"})

    return app


def create_production_app() -> FastAPI:
    """
    App backed by Postgres and Valkey, with URLs read from Vault.

    Usage:
        uvicorn --factory api.app:create_production_app
    """
    from clients.postgres_client import PostgresClient
    from clients.postgres_store import PostgresDocumentStore
    from clients.valkey_client import ValkeyClient
    from clients.vault_client import get_database_url, get_valkey_url

    valkey = ValkeyClient(get_valkey_url())
    postgres = PostgresClient(get_database_url())
    store = PostgresDocumentStore(postgres, valkey)
    store.ensure_schema()
    logger.info("Document store ready")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        postgres.close()
        valkey.close()

    return create_app(build_services(store), SessionReader(valkey), lifespan=lifespan)
