"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (days for tokens, hours for
    sessions) to make configuration intuitive.
    """

    # Confirmation / reset token settings
    token_expiry_days: int = Field(
        default=1,
        description="How long confirmation and password reset tokens remain valid",
        ge=1,
        le=7,
    )

    # Session settings
    session_expiry_hours: int = Field(
        default=24,
        description="Session lifetime in hours, extended on activity",
        ge=1,
        le=2160,
    )

    # Signup
    auto_validate_signup: bool = Field(
        default=False,
        description="Mark new accounts validated without waiting for email confirmation",
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for confirmation and reset links",
    )
    app_name: str = Field(
        default="SessionGate",
        description="Application name for emails",
    )


class MfaConfig(BaseModel):
    """
    MFA provider integration settings.

    Loaded once at startup and handed to MfaProviderClient. Frozen so request
    code cannot mutate it.
    """

    site_url: str = Field(..., min_length=1, description="Provider base URL")
    app_uid: str = Field(..., min_length=1, description="Application integration id")
    app_secret: str = Field(..., min_length=1, description="Application integration secret", repr=False)
    timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on a single provider call",
        gt=0,
        le=60,
    )

    model_config = {"frozen": True}
