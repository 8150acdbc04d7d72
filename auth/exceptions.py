"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class SessionExpiredError(AuthError):
    """Session is unknown or has expired; the user must re-authenticate."""


class InvalidTokenError(AuthError):
    """Session record exists but cannot be read (malformed or tampered)."""
