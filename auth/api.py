"""HTTP routes for authentication.

Handlers are plain `def` so FastAPI runs them in its threadpool; the MFA
provider call blocks for up to its timeout and must not stall the loop.
"""

import ipaddress
import logging

from fastapi import APIRouter, Request, Response, Query
from fastapi.responses import JSONResponse

from auth.service import AuthService
from auth.security_middleware import SESSION_COOKIE
from auth.types import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginState,
    ResetPasswordRequest,
    Session,
    SignupRequest,
)
from auth.exceptions import (
    AccountNotValidatedError,
    AlreadyValidatedError,
    DelegateFailureError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenNotFoundError,
)
from api.base import success_response, error_response, ErrorCodes
from utils.user_context import get_current_email

logger = logging.getLogger(__name__)


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message).model_dump(mode="json"),
    )


def _set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.token,
        httponly=True,
        secure=True,
        samesite="lax",
        max_age=int((session.expires_at - session.created_at).total_seconds()),
    )


def create_auth_router(auth_service: AuthService) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/login")
    def login(request: Request, response: Response, body: LoginRequest):
        """Password login.

        Returns the resulting login state. pending_mfa means the session
        exists but protected routes stay closed until /mfa/check confirms.
        """
        try:
            result = auth_service.login(
                email=body.email,
                password=body.password,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except InvalidCredentialsError:
            return _error(401, ErrorCodes.INVALID_CREDENTIALS, "Invalid user or password")
        except AccountNotValidatedError:
            return _error(
                403,
                ErrorCodes.ACCOUNT_NOT_VALIDATED,
                "Account not validated, please check your email",
            )
        except DelegateFailureError as e:
            failure = _error(
                502,
                ErrorCodes.MFA_UNAVAILABLE,
                "A technical error occurred, please try again later",
            )
            if e.session is not None:
                _set_session_cookie(failure, e.session)
            return failure

        _set_session_cookie(response, result.session)
        return success_response({"state": result.state.value, "admitted": result.state.admitted})

    @router.post("/mfa/check")
    def check_mfa(request: Request):
        """Re-check the MFA provider for a session pending its second factor."""
        session_token = request.cookies.get(SESSION_COOKIE)
        if not session_token:
            return _error(401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            state = auth_service.complete_mfa(session_token, ip_address=_get_client_ip(request))
        except DelegateFailureError:
            return _error(
                502,
                ErrorCodes.MFA_UNAVAILABLE,
                "A technical error occurred, please try again later",
            )

        if state is LoginState.ANONYMOUS:
            response = _error(401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")
            response.delete_cookie(key=SESSION_COOKIE)
            return response

        return success_response({"state": state.value, "admitted": state.admitted})

    @router.api_route("/logout", methods=["GET", "POST"])
    def logout(request: Request, response: Response):
        """Logout - revoke session and clear cookie. Always succeeds."""
        session_token = request.cookies.get(SESSION_COOKIE)

        if session_token:
            auth_service.logout(
                session_token=session_token,
                ip_address=_get_client_ip(request),
            )

        response.delete_cookie(key=SESSION_COOKIE)

        return success_response({"message": "You've been logged out"})

    @router.post("/signup", status_code=201)
    def signup(request: Request, body: SignupRequest):
        """Create an account; a confirmation link is emailed."""
        try:
            result = auth_service.signup(
                email=body.email,
                fullname=body.fullname,
                password=body.password,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except EmailAlreadyExistsError:
            return _error(409, ErrorCodes.ALREADY_EXISTS, "This email is already registered")
        except DelegateFailureError:
            return _error(
                502,
                ErrorCodes.MFA_UNAVAILABLE,
                "A technical error occurred, please try again later",
            )

        return success_response({
            "user": {
                "id": str(result.user.id),
                "email": result.user.email,
                "validated": result.user.validated,
                "mfa_required": result.user.mfa_required,
            },
            "confirmation_sent": result.confirmation_sent,
        })

    @router.get("/confirm")
    def confirm(request: Request, token: str = Query(None)):
        """Validate an account from the link in the confirmation email.

        Token errors are reported distinctly so the user knows whether to
        request a new link.
        """
        if not token:
            return _error(400, ErrorCodes.INVALID_REQUEST, "Token parameter is required")

        try:
            user = auth_service.confirm(
                token=token,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except TokenNotFoundError:
            return _error(404, ErrorCodes.TOKEN_NOT_FOUND, "Unknown confirmation link")
        except TokenExpiredError:
            return _error(410, ErrorCodes.TOKEN_EXPIRED, "This confirmation link has expired")
        except AlreadyValidatedError:
            return _error(409, ErrorCodes.ALREADY_VALIDATED, "Account already validated")

        return success_response({"email": user.email, "validated": True})

    @router.post("/forgot-password")
    def forgot_password(request: Request, body: ForgotPasswordRequest):
        """Request a password reset link. Same answer whether or not the email exists."""
        auth_service.request_password_reset(
            email=body.email,
            ip_address=_get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
        return success_response({"message": "If the account exists, a reset link was sent"})

    @router.post("/reset-password")
    def reset_password(request: Request, body: ResetPasswordRequest):
        """Set a new password using a reset token."""
        try:
            auth_service.reset_password(
                token=body.token,
                new_password=body.password,
                ip_address=_get_client_ip(request),
                user_agent=request.headers.get("User-Agent"),
            )
        except TokenNotFoundError:
            return _error(404, ErrorCodes.TOKEN_NOT_FOUND, "Unknown reset link")
        except TokenExpiredError:
            return _error(410, ErrorCodes.TOKEN_EXPIRED, "This reset link has expired")

        return success_response({"message": "Password updated"})

    @router.get("/me")
    async def get_current_user():
        """Get current authenticated user.

        Requires authentication (middleware sets the identity context).
        """
        try:
            email = get_current_email()
        except RuntimeError:
            return _error(401, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        return success_response({"email": email})

    return router
