"""Pydantic models for auth domain."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated
from uuid import UUID

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

from auth.passwords import MAX_PASSWORD_BYTES, password_too_long


class MfaState(str, Enum):
    """Second-factor status persisted on the user record."""

    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    CONFIRMED = "confirmed"


class TokenPurpose(str, Enum):
    """What a token may be used for."""

    PASSWORD_RESET = "password-reset"
    EMAIL_CONFIRMATION = "email-confirmation"


class LoginState(str, Enum):
    """Where a caller stands in the login flow."""

    ANONYMOUS = "anonymous"
    SESSION_ESTABLISHED = "session_established"
    PENDING_MFA = "pending_mfa"
    MFA_AUTHENTICATED = "mfa_authenticated"

    @property
    def admitted(self) -> bool:
        return self in (LoginState.SESSION_ESTABLISHED, LoginState.MFA_AUTHENTICATED)


class User(BaseModel):
    """A registered user of the system."""

    id: UUID
    email: str  # Case-sensitive as stored
    fullname: str
    password_hash: str = Field(..., repr=False)
    validated: bool  # Required - fail closed, no default
    mfa_email: str | None = None
    mfa_state: MfaState = MfaState.NOT_REQUIRED
    confirmation_token: str | None = Field(default=None, repr=False)
    created_at: datetime

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def _check_mfa_consistency(self) -> "User":
        if self.mfa_email is None and self.mfa_state is not MfaState.NOT_REQUIRED:
            raise ValueError("mfa_state must be not_required when mfa_email is unset")
        if self.mfa_email is not None and self.mfa_state is MfaState.NOT_REQUIRED:
            raise ValueError("mfa_state must be pending or confirmed when mfa_email is set")
        return self

    @property
    def mfa_required(self) -> bool:
        return self.mfa_email is not None


class Token(BaseModel):
    """A single-use token bound to one user and one email address."""

    token: str = Field(..., description="URL-safe token")
    user_id: UUID
    purpose: TokenPurpose
    email: str
    created_at: datetime


class Session(BaseModel):
    """A server-side session. The email is its only identity attribute."""

    token: str = Field(..., description="Session token (opaque string)")
    email: str
    created_at: datetime
    expires_at: datetime


class MfaEnrollment(BaseModel):
    """Outcome of asking the MFA provider about an email."""

    enrolled: bool
    finished: bool


def _check_email_format(value: str) -> str:
    """Reject malformed addresses without rewriting valid ones."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e)) from e
    return value


def _check_password_bytes(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


RawEmail = Annotated[str, AfterValidator(_check_email_format)]
Password = Annotated[str, Field(max_length=255), AfterValidator(_check_password_bytes)]


class LoginRequest(BaseModel):
    """Request payload for password login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=255)


class SignupRequest(BaseModel):
    """Request payload for account creation.

    The email is checked for shape but kept exactly as typed; it is stored
    and matched case-sensitively.
    """

    email: RawEmail
    fullname: str = Field(..., max_length=255)
    password: Password

    @field_validator("fullname", "password")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value


class ForgotPasswordRequest(BaseModel):
    """Request payload for a password reset link."""

    email: RawEmail


class ResetPasswordRequest(BaseModel):
    """Request payload for setting a new password with a reset token."""

    token: str = Field(..., min_length=1)
    password: Password = Field(..., min_length=1)


@dataclass
class GateDecision:
    """Result of running a request through the session gate."""

    admitted: bool
    email: str | None = None
    clear_session: bool = False
    reason: str | None = None


@dataclass
class LoginResult:
    """Result of a password login."""

    session: Session
    state: LoginState
