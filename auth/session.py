"""Read-only session lookup.

Sessions are written to Valkey by the external auth service under
"session:<token>" with a TTL matching expiry. This module only resolves a
token to its Session; it never creates, extends or revokes one.
"""

from pydantic import ValidationError

from clients.valkey_client import ValkeyClient
from auth.types import Session
from auth.exceptions import InvalidTokenError, SessionExpiredError
from utils.clock import Clock, SystemClock, parse_iso


class SessionReader:
    """Resolves session tokens to Sessions."""

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, clock: Clock | None = None):
        self._valkey = valkey
        self._clock = clock or SystemClock()

    def _key(self, token: str) -> str:
        """Generate Valkey key for session token."""
        return f"{self.KEY_PREFIX}{token}"

    def validate_session(self, token: str) -> Session:
        """Validate session token and return session.

        Raises:
            SessionExpiredError: Token unknown or past its expiry
            InvalidTokenError: Stored record is malformed
        """
        try:
            data = self._valkey.get_json(self._key(token))
        except ValueError as e:
            raise InvalidTokenError("Malformed session record") from e

        if data is None:
            raise SessionExpiredError("Session not found or expired")

        try:
            session = Session(
                token=token,
                user_id=data["user_id"],
                is_admin=bool(data.get("is_admin", False)),
                created_at=parse_iso(data["created_at"]),
                expires_at=parse_iso(data["expires_at"]),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise InvalidTokenError("Malformed session record") from e

        # Valkey TTL normally evicts first
        if self._clock.now() > session.expires_at:
            raise SessionExpiredError("Session expired")

        return session
