"""Authentication context for the API (sessions are issued elsewhere)."""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    SessionExpiredError,
)
from auth.types import Session
from auth.session import SessionReader
from auth.security_middleware import AuthMiddleware
