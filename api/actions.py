"""POST /api/actions - unified mutation endpoint."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import respond
from core.models import (
    CustomerCreate, CustomerUpdate,
    InvoiceCreate, InvoiceUpdate, InvoiceStatus,
    ProductCreate, ProductUpdate,
    ProductTemplateCreate, ProductTemplateUpdate,
    SettingsUpdate,
)
from utils.user_context import get_current_user_id


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict = {}


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "customer": CustomerHandler(services["customer"]),
        "invoice": InvoiceHandler(services["invoice"]),
        "product": ProductHandler(services["product"]),
        "product_template": ProductTemplateHandler(services["product_template"]),
        "settings": SettingsHandler(services["settings"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data), get_current_user_id())
        return respond(request, result)

    return router


def _require_id(data: dict) -> str:
    record_id = data.pop("id", None)
    if not record_id:
        raise ValueError("'id' is required")
    return str(record_id)


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class CustomerHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict, owner_id: str):
        customer = self.service.create(CustomerCreate(**data), owner_id)
        return customer.model_dump(mode="json")

    def _handle_update(self, data: dict, owner_id: str):
        customer_id = _require_id(data)
        customer = self.service.update(customer_id, CustomerUpdate(**data), owner_id)
        return customer.model_dump(mode="json")

    def _handle_delete(self, data: dict, owner_id: str):
        self.service.delete(_require_id(data), owner_id)
        return {"deleted": True}


class InvoiceHandler:
    ALLOWED_ACTIONS = {
        "create", "update", "delete", "duplicate",
        "mark_sent", "mark_paid", "update_status", "sweep_overdue",
    }

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict, owner_id: str):
        invoice = self.service.create(InvoiceCreate(**data), owner_id)
        return invoice.model_dump(mode="json")

    def _handle_update(self, data: dict, owner_id: str):
        invoice_id = _require_id(data)
        invoice = self.service.update(invoice_id, InvoiceUpdate(**data), owner_id)
        return invoice.model_dump(mode="json")

    def _handle_delete(self, data: dict, owner_id: str):
        self.service.delete(_require_id(data), owner_id)
        return {"deleted": True}

    def _handle_duplicate(self, data: dict, owner_id: str):
        invoice = self.service.duplicate(_require_id(data), owner_id)
        return invoice.model_dump(mode="json")

    def _handle_mark_sent(self, data: dict, owner_id: str):
        invoice = self.service.mark_sent(_require_id(data), owner_id)
        return invoice.model_dump(mode="json")

    def _handle_mark_paid(self, data: dict, owner_id: str):
        invoice = self.service.mark_paid(_require_id(data), owner_id)
        return invoice.model_dump(mode="json")

    def _handle_update_status(self, data: dict, owner_id: str):
        invoice_id = _require_id(data)
        if "status" not in data:
            raise ValueError("'status' is required")
        invoice = self.service.update_status(
            invoice_id,
            InvoiceStatus(data["status"]),
            owner_id,
            allow_reversion=bool(data.get("allow_reversion", False)),
        )
        return invoice.model_dump(mode="json")

    def _handle_sweep_overdue(self, data: dict, owner_id: str):
        result = self.service.sweep_overdue(owner_id)
        return result.model_dump(mode="json")


class ProductHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict, owner_id: str):
        product = self.service.create(ProductCreate(**data), owner_id)
        return product.model_dump(mode="json")

    def _handle_update(self, data: dict, owner_id: str):
        product_id = _require_id(data)
        product = self.service.update(product_id, ProductUpdate(**data), owner_id)
        return product.model_dump(mode="json")

    def _handle_delete(self, data: dict, owner_id: str):
        self.service.delete(_require_id(data), owner_id)
        return {"deleted": True}


class ProductTemplateHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete", "duplicate"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict, owner_id: str):
        template = self.service.create(ProductTemplateCreate(**data), owner_id)
        return template.model_dump(mode="json")

    def _handle_update(self, data: dict, owner_id: str):
        template_id = _require_id(data)
        template = self.service.update(template_id, ProductTemplateUpdate(**data), owner_id)
        return template.model_dump(mode="json")

    def _handle_delete(self, data: dict, owner_id: str):
        self.service.delete(_require_id(data), owner_id)
        return {"deleted": True}

    def _handle_duplicate(self, data: dict, owner_id: str):
        template = self.service.duplicate(_require_id(data), owner_id, data.get("name"))
        return template.model_dump(mode="json")


class SettingsHandler:
    """Settings belong to the caller; no id is taken."""

    ALLOWED_ACTIONS = {"update", "update_company_details", "update_notifications"}

    def __init__(self, service):
        self.service = service

    def _handle_update(self, data: dict, owner_id: str):
        settings = self.service.update(owner_id, SettingsUpdate(**data))
        return settings.model_dump(mode="json")

    def _handle_update_company_details(self, data: dict, owner_id: str):
        settings = self.service.update_company_details(owner_id, data)
        return settings.model_dump(mode="json")

    def _handle_update_notifications(self, data: dict, owner_id: str):
        settings = self.service.update_notifications(owner_id, data)
        return settings.model_dump(mode="json")
