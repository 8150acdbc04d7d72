"""GET /api/data - unified read endpoint."""

from fastapi import APIRouter, Query, Request

from api.base import respond
from core.errors import NotFoundError
from core.models import InvoiceStatus
from utils.user_context import get_current_user_id


VALID_TYPES = {"customers", "invoices", "product_templates", "products", "settings"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    customer_svc = services["customer"]
    invoice_svc = services["invoice"]
    dashboard_svc = services["dashboard"]
    product_svc = services["product"]
    template_svc = services["product_template"]
    settings_svc = services["settings"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/invoices/next-number")
    async def next_invoice_number(request: Request):
        number = invoice_svc.peek_number(get_current_user_id())
        return respond(request, {"invoice_number": number})

    @router.get("/data/invoices/defaults")
    async def new_invoice_defaults(request: Request):
        defaults = invoice_svc.new_invoice_defaults(get_current_user_id())
        return respond(request, defaults.model_dump(mode="json"))

    @router.get("/data/products/categories")
    async def product_categories(request: Request):
        return respond(request, product_svc.categories(get_current_user_id()))

    @router.get("/data/product-templates/categories")
    async def template_categories(request: Request):
        return respond(request, template_svc.categories(get_current_user_id()))

    @router.get("/data/dashboard")
    async def dashboard(request: Request):
        stats = dashboard_svc.stats(get_current_user_id())
        return respond(request, stats.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        status: str | None = Query(None),
        filter: str | None = Query(None),
        limit: int | None = Query(None, ge=1, le=500),
        category: str | None = Query(None),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        owner_id = get_current_user_id()

        if type == "customers":
            return respond(request, _customers(customer_svc, owner_id, id))

        if type == "invoices":
            return respond(request, _invoices(invoice_svc, owner_id, id, status, filter, limit))

        if type == "products":
            return respond(request, _catalog(product_svc, "product", owner_id, id, category))

        if type == "product_templates":
            return respond(request, _catalog(template_svc, "product template", owner_id, id, category))

        if type == "settings":
            return respond(request, settings_svc.get(owner_id).model_dump(mode="json"))

    return router


def _customers(customer_svc, owner_id, id):
    if id:
        customer = customer_svc.get(id, owner_id)
        if customer is None:
            raise NotFoundError("customer", id)
        return customer.model_dump(mode="json")

    customers = customer_svc.list_by_owner(owner_id)
    return [c.model_dump(mode="json") for c in customers]


def _invoice_payload(invoice) -> dict:
    data = invoice.model_dump(mode="json")
    data["display_totals"] = {k: str(v) for k, v in invoice.display_totals.items()}
    return data


def _invoices(invoice_svc, owner_id, id, status, filter, limit):
    if id:
        invoice = invoice_svc.get(id, owner_id)
        if invoice is None:
            raise NotFoundError("invoice", id)
        return _invoice_payload(invoice)

    if filter == "recent":
        invoices = invoice_svc.list_recent(owner_id, limit)
    elif filter == "overdue":
        invoices = invoice_svc.list_overdue(owner_id)
    elif filter is not None:
        raise ValueError(f"Unknown invoice filter '{filter}'. Valid filters: overdue, recent")
    elif status is not None:
        invoices = invoice_svc.list_by_status(owner_id, InvoiceStatus(status))
    else:
        invoices = invoice_svc.list_by_owner(owner_id)

    return [_invoice_payload(i) for i in invoices]


def _catalog(svc, entity, owner_id, id, category):
    """Products or product templates: one by id, by category, or all."""
    if id:
        record = svc.get(id, owner_id)
        if record is None:
            raise NotFoundError(entity, id)
        return record.model_dump(mode="json")

    if category is not None:
        records = svc.list_by_category(owner_id, category)
    else:
        records = svc.list_by_owner(owner_id)
    return [r.model_dump(mode="json") for r in records]
