"""Security middleware for FastAPI - session gate and identity context."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.exceptions import TechnicalError
from auth.gate import SessionGate
from auth.session import SessionManager
from api.base import error_response, ErrorCodes
from utils.user_context import set_current_email, clear_current_email

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_token"


def _not_authenticated() -> JSONResponse:
    # One response for every rejection reason
    return JSONResponse(
        status_code=401,
        content=error_response(
            ErrorCodes.NOT_AUTHENTICATED,
            "Authentication required",
        ).model_dump(mode="json"),
    )


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that runs every protected request through the session gate.

    For protected routes:
    1. Extracts session token from 'session_token' cookie
    2. Resolves the session's email via SessionManager
    3. Asks SessionGate whether that email may pass (fresh user read)
    4. Sets the identity contextvar read by protected handlers
    5. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/login",
        "/auth/logout",
        "/auth/signup",
        "/auth/confirm",
        "/auth/mfa/check",
        "/auth/forgot-password",
        "/auth/reset-password",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_manager: SessionManager, gate: SessionGate):
        super().__init__(app)
        self._session_manager = session_manager
        self._gate = gate

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path + "/"):
                return True
        return False

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        # Skip auth for public paths
        if self._is_public_path(path):
            return await call_next(request)

        session_token = request.cookies.get(SESSION_COOKIE)

        try:
            session = self._session_manager.get_session(session_token) if session_token else None
            decision = self._gate.check(session.email if session else None)
        except TechnicalError:
            logger.exception("Session gate unavailable")
            return JSONResponse(
                status_code=503,
                content=error_response(
                    ErrorCodes.TECHNICAL_ERROR,
                    "A technical error occurred, please try again later",
                ).model_dump(mode="json"),
            )

        if not decision.admitted:
            logger.debug(f"Rejected {path}: {decision.reason}")
            response = _not_authenticated()
            if decision.clear_session and session_token:
                self._session_manager.revoke_session(session_token)
                response.delete_cookie(key=SESSION_COOKIE)
            return response

        set_current_email(decision.email)

        try:
            response = await call_next(request)
            return response
        finally:
            # Always clear context
            clear_current_email()
