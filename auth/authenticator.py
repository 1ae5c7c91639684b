"""Credential check: email + password against the stored bcrypt hash."""

from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialsError
from auth.passwords import DUMMY_HASH, verify_password
from auth.types import User


class CredentialAuthenticator:
    """Verifies credentials and nothing else.

    Does not look at `validated` or MFA state; callers layer those policies
    on top. Never mutates the user.
    """

    def __init__(self, auth_db: AuthDatabase):
        self._auth_db = auth_db

    def authenticate(self, email: str, password: str) -> User:
        """Return the user whose email and password match.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            TechnicalError: User store unreachable.
        """
        user = self._auth_db.get_user_by_email(email)

        if user is None:
            # Same bcrypt cost as a real mismatch
            verify_password(password, DUMMY_HASH)
            raise InvalidCredentialsError("Invalid email or password")

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        return user
