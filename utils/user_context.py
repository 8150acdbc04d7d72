"""Propagate the caller's identity through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar

from pydantic import BaseModel, Field


class AuthContext(BaseModel):
    """Identity handed over by the external auth service."""

    user_id: str = Field(..., min_length=1, description="Opaque, stable user identifier")
    is_admin: bool = False

    model_config = {"frozen": True}


_current_auth: ContextVar[AuthContext | None] = ContextVar("current_auth", default=None)


def get_current_auth() -> AuthContext:
    """
    Get current auth context.

    Raises RuntimeError if no user context is set.
    This is fail-fast behavior - if you're in a code path that
    requires user context and it's not set, that's a bug.
    """
    auth = _current_auth.get()
    if auth is None:
        raise RuntimeError(
            "No user context set. This usually means you're calling "
            "user-scoped code outside of an authenticated request."
        )
    return auth


def get_current_user_id() -> str:
    """Owner identifier of the current caller."""
    return get_current_auth().user_id


def set_current_auth(auth: AuthContext) -> None:
    """
    Set current auth context.

    Called by auth middleware after resolving the session.
    """
    _current_auth.set(auth)


def clear_current_auth() -> None:
    """
    Clear user context.

    Must be called in finally block to prevent context leakage.
    """
    _current_auth.set(None)


@contextmanager
def user_context(user_id: str, is_admin: bool = False):
    """
    Context manager for temporarily acting as a user.

    Useful for tests, background sweeps that iterate over owners, and
    admin operations on behalf of a user.

    Example:
        with user_context("user-123"):
            invoices = invoice_service.list_by_owner(get_current_user_id())
    """
    previous = _current_auth.get()
    set_current_auth(AuthContext(user_id=user_id, is_admin=is_admin))
    try:
        yield
    finally:
        if previous is None:
            clear_current_auth()
        else:
            set_current_auth(previous)
