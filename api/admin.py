"""GET /api/admin/* - cross-owner reads for administrators."""

from fastapi import APIRouter, Request

from api.base import respond
from utils.user_context import get_current_auth


def create_admin_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]

    @router.get("/admin/invoices")
    async def all_invoices(request: Request):
        # Non-admins get UnauthorizedError -> 403
        invoices = invoice_svc.list_all(get_current_auth())
        return respond(request, [i.model_dump(mode="json") for i in invoices])

    return router
