"""Typed exceptions for invoice and customer operations.

Services raise these; the API layer maps each one to a status code and an
error code. Messages are safe to show to the user.
"""


class InvoicerError(Exception):
    """Base class for all domain errors."""


class NotFoundError(InvoicerError):
    """Referenced record does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class UnauthorizedError(InvoicerError):
    """
    Caller does not own the record.

    Raised loudly on cross-tenant access. Only absence is reported as None/NotFound.
    """

    def __init__(self, entity: str, action: str = "access"):
        self.entity = entity
        self.action = action
        super().__init__(f"Unauthorized: you can only {action} your own {entity}s")


class ValidationFailure(InvoicerError):
    """Input is well-formed but violates a business rule."""


class InvalidTransitionError(ValidationFailure):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: str, target: str, reason: str | None = None):
        self.current = current
        self.target = target
        message = f"Cannot change invoice status from '{current}' to '{target}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DuplicateInvoiceNumberError(ValidationFailure):
    """Invoice number already used by the same owner."""

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number {invoice_number} already exists")


class StoreUnavailableError(InvoicerError):
    """Document store transport or backend failure."""


class OperationFailedError(InvoicerError):
    """
    An operation could not complete because the store failed.

    The original StoreUnavailableError is chained as __cause__.
    """

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Failed to {operation}")
