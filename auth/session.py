"""Session token lifecycle management.

Sessions are stored in Valkey with TTL matching session expiry.
Token format is cryptographically random (secrets.token_urlsafe).
The stored record carries the authenticated email and timestamps only;
MFA state is never cached here, the gate re-reads it from the user row.
"""

import logging
import secrets
from datetime import timedelta

import redis

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import TechnicalError
from auth.types import Session
from utils.timezone import now_utc, parse_iso

logger = logging.getLogger(__name__)


class SessionManager:
    """Session token lifecycle management.

    Sessions are stored in Valkey with TTL matching session expiry.
    Every successful read slides the expiry forward.
    """

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config
        self._ttl_seconds = config.session_expiry_hours * 3600

    def _key(self, token: str) -> str:
        """Generate Valkey key for session token."""
        return f"{self.KEY_PREFIX}{token}"

    def _store(self, session: Session) -> None:
        self._valkey.set_json(
            self._key(session.token),
            {
                "email": session.email,
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
            },
            expire_seconds=self._ttl_seconds,
        )

    def create_session(self, email: str) -> Session:
        """Create new session for an authenticated email.

        Raises:
            TechnicalError: Session store unreachable.
        """
        now = now_utc()
        session = Session(
            token=secrets.token_urlsafe(32),
            email=email,
            created_at=now,
            expires_at=now + timedelta(hours=self._config.session_expiry_hours),
        )

        try:
            self._store(session)
        except redis.RedisError as e:
            logger.error(f"Failed to store session: {e}")
            raise TechnicalError("Session store unavailable") from e

        return session

    def get_session(self, token: str) -> Session | None:
        """Return the live session for token, or None.

        Extends the session on every hit (sliding window).

        Raises:
            TechnicalError: Session store unreachable.
        """
        try:
            data = self._valkey.get_json(self._key(token))
        except redis.RedisError as e:
            logger.error(f"Failed to read session: {e}")
            raise TechnicalError("Session store unavailable") from e
        except ValueError:
            logger.warning("Discarding corrupt session record")
            self.revoke_session(token)
            return None

        if data is None:
            return None

        session = Session(
            token=token,
            email=data["email"],
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
        )

        now = now_utc()

        # Check expiry (belt and suspenders - Valkey TTL should handle this)
        if now > session.expires_at:
            self.revoke_session(token)
            return None

        extended = session.model_copy(
            update={"expires_at": now + timedelta(hours=self._config.session_expiry_hours)}
        )
        try:
            self._store(extended)
        except redis.RedisError as e:
            logger.error(f"Failed to extend session: {e}")
            raise TechnicalError("Session store unavailable") from e

        return extended

    def revoke_session(self, token: str) -> None:
        """Revoke session (logout).

        Safe to call with nonexistent token. Never raises; a store outage
        is logged and the session simply ages out through its TTL.
        """
        try:
            self._valkey.delete(self._key(token))
        except redis.RedisError as e:
            logger.error(f"Failed to revoke session, TTL will expire it: {e}")
