"""Security middleware for FastAPI - session validation and user context."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionReader
from auth.exceptions import InvalidTokenError, SessionExpiredError
from api.base import error_response, request_id_of, ErrorCodes
from utils.user_context import AuthContext, set_current_auth, clear_current_auth


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates session and sets user context.

    For protected routes:
    1. Extracts the session token from an "Authorization: Bearer" header or
       the 'session_token' cookie
    2. Validates it via SessionReader
    3. Sets AuthContext in request.state and the user context
    4. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_reader: SessionReader):
        super().__init__(app)
        self._session_reader = session_reader

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    def _extract_token(self, request: Request) -> str | None:
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return request.cookies.get("session_token")

    def _unauthorized(self, request: Request, code: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(code, message, request_id_of(request)).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        # Skip auth for public paths
        if self._is_public_path(path):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return self._unauthorized(request, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            session = self._session_reader.validate_session(token)
        except SessionExpiredError:
            return self._unauthorized(request, ErrorCodes.SESSION_EXPIRED, "Session has expired")
        except InvalidTokenError:
            return self._unauthorized(request, ErrorCodes.INVALID_TOKEN, "Invalid session")

        auth = AuthContext(user_id=session.user_id, is_admin=session.is_admin)
        set_current_auth(auth)
        request.state.auth = auth
        request.state.session = session

        try:
            response = await call_next(request)
            return response
        finally:
            # Always clear context
            clear_current_auth()
