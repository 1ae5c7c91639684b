"""Database operations for authentication.

Tables: users, tokens.

    users(id uuid pk, email text unique, fullname text, password_hash text,
          validated bool, mfa_email text null, mfa_state text,
          confirmation_token text null, created_at timestamptz)
    tokens(token text pk, user_id uuid, purpose text, email text,
           created_at timestamptz)

Updates touch a single row by id; concurrent writers to the same user
resolve last-writer-wins.
Any psycopg2 failure surfaces as TechnicalError so callers never mistake
an outage for "no such user". The one exception is the unique email
constraint on insert, which means the account already exists.
"""

import logging
from contextlib import contextmanager
from uuid import UUID

import psycopg2
import psycopg2.errors

from clients.postgres_client import PostgresClient
from auth.exceptions import EmailAlreadyExistsError, TechnicalError
from auth.types import MfaState, Token, TokenPurpose, User
from utils.timezone import now_utc

_USER_COLUMNS = """id, email, fullname, password_hash, validated, mfa_email,
                   mfa_state, confirmation_token, created_at"""

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors():
    try:
        yield
    except psycopg2.Error as e:
        logger.error(f"Auth store query failed: {e}")
        raise TechnicalError("User store unavailable") from e


def _as_uuid(value) -> UUID:
    return UUID(value) if isinstance(value, str) else value


def _row_to_user(row: dict) -> User:
    return User(
        id=_as_uuid(row["id"]),
        email=row["email"],
        fullname=row["fullname"],
        password_hash=row["password_hash"],
        validated=row["validated"],
        mfa_email=row["mfa_email"],
        mfa_state=MfaState(row["mfa_state"]),
        confirmation_token=row["confirmation_token"],
        created_at=row["created_at"],
    )


def _row_to_token(row: dict) -> Token:
    return Token(
        token=row["token"],
        user_id=_as_uuid(row["user_id"]),
        purpose=TokenPurpose(row["purpose"]),
        email=row["email"],
        created_at=row["created_at"],
    )


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def _single(self, query: str, params: tuple) -> dict | None:
        with _store_errors():
            return self._db.execute_single(query, params)

    def _returning(self, query: str, params: tuple) -> list[dict]:
        with _store_errors():
            return self._db.execute_returning(query, params)

    def get_user_by_email(self, email: str) -> User | None:
        """Find user by email (exact match, case-sensitive)."""
        row = self._single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s",
            (email,),
        )
        return _row_to_user(row) if row else None

    def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        row = self._single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (str(user_id),),
        )
        return _row_to_user(row) if row else None

    def create_user(
        self,
        email: str,
        fullname: str,
        password_hash: str,
        validated: bool,
        mfa_email: str | None,
        mfa_state: MfaState,
    ) -> User:
        """Insert a new user. Email is stored exactly as given.

        Raises:
            EmailAlreadyExistsError: The unique email constraint fired, e.g.
                a concurrent signup won the race.
        """
        with _store_errors():
            try:
                rows = self._db.execute_returning(
                    f"""INSERT INTO users
                           (email, fullname, password_hash, validated, mfa_email, mfa_state, created_at)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_USER_COLUMNS}""",
                    (email, fullname, password_hash, validated, mfa_email, mfa_state.value, now_utc()),
                )
            except psycopg2.errors.UniqueViolation as e:
                raise EmailAlreadyExistsError("An account with this email already exists") from e
        return _row_to_user(rows[0])

    def delete_user(self, user_id: UUID) -> bool:
        """Remove a user and any tokens issued to it."""
        self._returning(
            "DELETE FROM tokens WHERE user_id = %s RETURNING token",
            (str(user_id),),
        )
        rows = self._returning(
            "DELETE FROM users WHERE id = %s RETURNING id",
            (str(user_id),),
        )
        return len(rows) > 0

    def set_confirmation_token(self, user_id: UUID, token: str) -> None:
        """Record the confirmation token on the user row."""
        self._returning(
            "UPDATE users SET confirmation_token = %s WHERE id = %s RETURNING id",
            (token, str(user_id)),
        )

    def set_validated(self, user_id: UUID) -> bool:
        """Mark the user's email as confirmed.

        Returns:
            True if user was found and updated, False if not found.
        """
        rows = self._returning(
            "UPDATE users SET validated = true WHERE id = %s RETURNING id",
            (str(user_id),),
        )
        return len(rows) > 0

    def set_mfa_state(self, user_id: UUID, state: MfaState) -> bool:
        """Overwrite the user's MFA state (last writer wins).

        Returns:
            True if user was found and updated, False if not found.
        """
        rows = self._returning(
            "UPDATE users SET mfa_state = %s WHERE id = %s RETURNING id",
            (state.value, str(user_id)),
        )
        return len(rows) > 0

    def set_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """Replace the stored password hash."""
        rows = self._returning(
            "UPDATE users SET password_hash = %s WHERE id = %s RETURNING id",
            (password_hash, str(user_id)),
        )
        return len(rows) > 0

    def store_token(self, token: Token) -> None:
        """Persist a freshly issued token."""
        self._returning(
            """INSERT INTO tokens (token, user_id, purpose, email, created_at)
               VALUES (%s, %s, %s, %s, %s)
               RETURNING token""",
            (
                token.token,
                str(token.user_id),
                token.purpose.value,
                token.email,
                token.created_at,
            ),
        )

    def get_token(self, token: str, purpose: TokenPurpose) -> Token | None:
        """Retrieve a token by value and purpose."""
        row = self._single(
            """SELECT token, user_id, purpose, email, created_at
               FROM tokens
               WHERE token = %s AND purpose = %s""",
            (token, purpose.value),
        )
        return _row_to_token(row) if row else None

    def delete_token(self, token: str) -> bool:
        """Delete a token once it has been spent."""
        rows = self._returning(
            "DELETE FROM tokens WHERE token = %s RETURNING token",
            (token,),
        )
        return len(rows) > 0
