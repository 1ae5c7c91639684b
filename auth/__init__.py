"""Authentication: credentials, sessions, MFA delegation and account tokens."""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    AccountNotValidatedError,
    TechnicalError,
    DelegateFailureError,
    TokenNotFoundError,
    TokenExpiredError,
    AlreadyValidatedError,
    EmailAlreadyExistsError,
)
from auth.types import (
    User,
    Token,
    Session,
    MfaState,
    TokenPurpose,
    LoginState,
    LoginResult,
    GateDecision,
    MfaEnrollment,
)
from auth.config import AuthConfig, MfaConfig
from auth.database import AuthDatabase
from auth.authenticator import CredentialAuthenticator
from auth.tokens import TokenStore
from auth.mfa import MfaDelegate
from auth.gate import SessionGate
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.session import SessionManager
from auth.service import AuthService, SignupResult
from auth.security_middleware import AuthMiddleware
from auth.api import create_auth_router
