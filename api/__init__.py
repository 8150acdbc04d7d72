"""HTTP interface: /api/data reads, /api/actions mutations, admin reads."""

from api.base import (
    APIResponse,
    ErrorCodes,
    error_response,
    respond,
    success_response,
)
