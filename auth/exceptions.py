"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Email unknown or password does not match.

    Both cases share one exception so callers cannot tell them apart.
    """


class AccountNotValidatedError(AuthError):
    """Credentials are correct but the email address is not yet confirmed."""


class TechnicalError(AuthError):
    """
    A backing store (database, session store) is unreachable.

    Never converted into InvalidCredentialsError. Log the cause, show the
    user a generic message.
    """


class DelegateFailureError(AuthError):
    """
    MFA provider unreachable, timed out, or returned a malformed response.

    Raised from login after the session exists; `session` carries it so the
    HTTP layer can still hand out the cookie for a later MFA re-check.
    """

    def __init__(self, message: str, session=None):
        self.session = session
        super().__init__(message)


class TokenNotFoundError(AuthError):
    """No token with this value and purpose exists."""


class TokenExpiredError(AuthError):
    """Token exists but is older than the expiry window."""


class AlreadyValidatedError(AuthError):
    """Confirmation token belongs to an account that is already validated."""


class EmailAlreadyExistsError(AuthError):
    """Signup attempted with an email that already has an account."""
