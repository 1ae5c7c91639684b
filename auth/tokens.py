"""Confirmation and password reset token lifecycle.

Tokens are cryptographically random (secrets.token_urlsafe). Expiry is
evaluated lazily against wall-clock time at the moment of use; nothing
on the token row records that it expired or was consumed.
"""

import secrets
from datetime import datetime, timedelta

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import TokenNotFoundError
from auth.types import Token, TokenPurpose, User
from utils.timezone import now_utc


class TokenStore:
    """Issues, looks up and ages single-use tokens."""

    TOKEN_BYTES = 32

    def __init__(self, auth_db: AuthDatabase, config: AuthConfig):
        self._auth_db = auth_db
        self._lifetime = timedelta(days=config.token_expiry_days)

    def issue(self, user: User, purpose: TokenPurpose, email: str) -> Token:
        """Create and persist a fresh token for user.

        Earlier tokens of the same purpose stay usable until they expire.
        """
        token = Token(
            token=secrets.token_urlsafe(self.TOKEN_BYTES),
            user_id=user.id,
            purpose=purpose,
            email=email,
            created_at=now_utc(),
        )
        self._auth_db.store_token(token)
        return token

    def find(self, token: str, purpose: TokenPurpose) -> Token:
        """Look up a token of the given purpose.

        Raises:
            TokenNotFoundError: No such token for this purpose.
        """
        found = self._auth_db.get_token(token, purpose)
        if found is None:
            raise TokenNotFoundError("Unknown token")
        return found

    def is_expired(self, token: Token, now: datetime | None = None) -> bool:
        """True once more than the token lifetime has passed since creation.

        A token exactly at the boundary is still valid.
        """
        now = now or now_utc()
        return now > token.created_at + self._lifetime

    def revoke(self, token: Token) -> None:
        """Remove a spent token."""
        self._auth_db.delete_token(token.token)
