"""Security event logging for auth audit trail.

Append-only log to the security_events table. Writes are best-effort:
an audit failure is reported through the application log and never
changes the outcome of the auth operation being audited.
"""

import logging
from enum import Enum
from typing import Any
from uuid import UUID

import psycopg2
from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Auth security event types."""

    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    MFA_PENDING = "mfa_pending"
    MFA_CONFIRMED = "mfa_confirmed"
    MFA_DELEGATE_FAILED = "mfa_delegate_failed"
    SESSION_CREATED = "session_created"
    SESSION_REVOKED = "session_revoked"
    USER_CREATED = "user_created"
    EMAIL_CONFIRMED = "email_confirmed"
    CONFIRMATION_FAILED = "confirmation_failed"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"
    PASSWORD_RESET_FAILED = "password_reset_failed"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        try:
            self._db.execute_returning(
                """INSERT INTO security_events
                   (event_type, email, user_id, ip_address, user_agent, details, created_at)
                   VALUES (%s, %s, %s, %s, %s, %s, %s)
                   RETURNING id""",
                (
                    event.value,
                    email,
                    str(user_id) if user_id else None,
                    ip_address,
                    user_agent,
                    Json(details) if details else None,
                    now_utc(),
                ),
            )
        except psycopg2.Error:
            logger.exception(f"Failed to record security event {event.value}")
