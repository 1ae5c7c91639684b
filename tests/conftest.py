"""Shared test fixtures for the sessiongate test suite.

Postgres and Valkey are replaced by in-memory stand-ins with the same
method surface as AuthDatabase and ValkeyClient, so the suite runs
without infrastructure. External HTTP collaborators are Mocks.
"""

import json
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest

from auth.authenticator import CredentialAuthenticator
from auth.config import AuthConfig
from auth.exceptions import EmailAlreadyExistsError
from auth.gate import SessionGate
from auth.mfa import MfaDelegate
from auth.passwords import hash_password
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.session import SessionManager
from auth.tokens import TokenStore
from auth.types import MfaEnrollment, MfaState, Token, TokenPurpose, User
from clients.email_client import EmailGatewayClient
from utils.timezone import now_utc
from utils.user_context import clear_current_email


# =============================================================================
# TEST USER CONSTANTS
# =============================================================================

TEST_USER_EMAIL = "a@x.com"
TEST_MFA_USER_EMAIL = "mfa@x.com"
TEST_PASSWORD = "correct horse battery staple"

# Hashed once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# =============================================================================
# IN-MEMORY STORES
# =============================================================================


class InMemoryAuthDatabase:
    """Dict-backed stand-in for AuthDatabase."""

    def __init__(self):
        self.users: dict[UUID, User] = {}
        self.tokens: dict[str, Token] = {}

    def add_user(
        self,
        email: str,
        validated: bool = True,
        mfa_email: str | None = None,
        mfa_state: MfaState = MfaState.NOT_REQUIRED,
        password_hash: str = TEST_PASSWORD_HASH,
        fullname: str = "Test User",
    ) -> User:
        user = User(
            id=uuid4(),
            email=email,
            fullname=fullname,
            password_hash=password_hash,
            validated=validated,
            mfa_email=mfa_email,
            mfa_state=mfa_state,
            created_at=now_utc(),
        )
        self.users[user.id] = user
        return user

    def add_token(self, user: User, purpose: TokenPurpose, created_at, token: str | None = None) -> Token:
        record = Token(
            token=token or f"tok-{uuid4().hex}",
            user_id=user.id,
            purpose=purpose,
            email=user.email,
            created_at=created_at,
        )
        self.tokens[record.token] = record
        return record

    def _update(self, user_id: UUID, **fields) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id] = self.users[user_id].model_copy(update=fields)
        return True

    def get_user_by_email(self, email: str) -> User | None:
        return next((u for u in self.users.values() if u.email == email), None)

    def get_user_by_id(self, user_id: UUID) -> User | None:
        return self.users.get(user_id)

    def create_user(self, email, fullname, password_hash, validated, mfa_email, mfa_state) -> User:
        if any(u.email == email for u in self.users.values()):
            # Mirrors the unique constraint on users.email
            raise EmailAlreadyExistsError("An account with this email already exists")
        return self.add_user(
            email=email,
            fullname=fullname,
            password_hash=password_hash,
            validated=validated,
            mfa_email=mfa_email,
            mfa_state=mfa_state,
        )

    def delete_user(self, user_id: UUID) -> bool:
        self.tokens = {k: t for k, t in self.tokens.items() if t.user_id != user_id}
        return self.users.pop(user_id, None) is not None

    def set_confirmation_token(self, user_id: UUID, token: str) -> None:
        self._update(user_id, confirmation_token=token)

    def set_validated(self, user_id: UUID) -> bool:
        return self._update(user_id, validated=True)

    def set_mfa_state(self, user_id: UUID, state: MfaState) -> bool:
        return self._update(user_id, mfa_state=state)

    def set_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        return self._update(user_id, password_hash=password_hash)

    def store_token(self, token: Token) -> None:
        self.tokens[token.token] = token

    def get_token(self, token: str, purpose: TokenPurpose) -> Token | None:
        found = self.tokens.get(token)
        if found is None or found.purpose is not purpose:
            return None
        return found

    def delete_token(self, token: str) -> bool:
        return self.tokens.pop(token, None) is not None


class InMemoryValkey:
    """Dict-backed stand-in for ValkeyClient. TTLs are recorded, not enforced."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def ping(self) -> bool:
        return True

    def set_json(self, key: str, value: dict, expire_seconds: int) -> None:
        self.data[key] = json.dumps(value)
        self.ttls[key] = expire_seconds

    def get_json(self, key: str) -> dict | None:
        value = self.data.get(key)
        return None if value is None else json.loads(value)

    def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.data.pop(key, None) is not None

    def close(self) -> None:
        pass


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_user_context():
    """Ensure clean identity context before and after each test."""
    clear_current_email()
    yield
    clear_current_email()


# =============================================================================
# AUTH COMPONENT FIXTURES
# =============================================================================


@pytest.fixture
def config():
    """Test config: confirmation required, one-day tokens."""
    return AuthConfig(
        token_expiry_days=1,
        session_expiry_hours=1,
        auto_validate_signup=False,
        app_base_url="https://test.example.com",
    )


@pytest.fixture
def auth_db():
    return InMemoryAuthDatabase()


@pytest.fixture
def valkey():
    return InMemoryValkey()


@pytest.fixture
def session_manager(valkey, config):
    return SessionManager(valkey, config)


@pytest.fixture
def token_store(auth_db, config):
    return TokenStore(auth_db, config)


@pytest.fixture
def gate(auth_db):
    return SessionGate(auth_db)


@pytest.fixture
def mock_mfa_delegate():
    """MFA delegate that reports no enrollment unless a test says otherwise."""
    mock = Mock(spec=MfaDelegate)
    mock.check_enrollment.return_value = MfaEnrollment(enrolled=False, finished=False)
    return mock


@pytest.fixture
def mock_email_client():
    """Mock email client - no actual emails sent in tests."""
    mock = Mock(spec=EmailGatewayClient)
    mock.send_confirmation_link.return_value = None
    mock.send_password_reset_link.return_value = None
    return mock


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def auth_service(
    config,
    auth_db,
    session_manager,
    token_store,
    mock_mfa_delegate,
    mock_email_client,
    mock_security_logger,
):
    """AuthService over in-memory stores with mocked outbound calls."""
    return AuthService(
        config=config,
        auth_db=auth_db,
        authenticator=CredentialAuthenticator(auth_db),
        session_manager=session_manager,
        token_store=token_store,
        mfa_delegate=mock_mfa_delegate,
        email_client=mock_email_client,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def password() -> str:
    """Plaintext password matching every fixture user's hash."""
    return TEST_PASSWORD


@pytest.fixture
def plain_user(auth_db):
    """Validated user without MFA."""
    return auth_db.add_user(TEST_USER_EMAIL)


@pytest.fixture
def mfa_user(auth_db):
    """Validated user enrolled with the MFA provider, not yet MFA authenticated."""
    return auth_db.add_user(
        TEST_MFA_USER_EMAIL,
        mfa_email=TEST_MFA_USER_EMAIL,
        mfa_state=MfaState.PENDING,
    )
