"""Authentication service - orchestrates login, MFA, signup and token flows."""

import logging
from dataclasses import dataclass

from auth.authenticator import CredentialAuthenticator
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.mfa import MfaDelegate
from auth.passwords import hash_password
from auth.session import SessionManager
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.tokens import TokenStore
from auth.types import LoginResult, LoginState, MfaState, TokenPurpose, User
from auth.exceptions import (
    AccountNotValidatedError,
    AlreadyValidatedError,
    DelegateFailureError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    TechnicalError,
    TokenExpiredError,
    TokenNotFoundError,
)
from clients.email_client import EmailGatewayClient, EmailGatewayError

logger = logging.getLogger(__name__)


@dataclass
class SignupResult:
    """Result of account creation."""

    user: User
    confirmation_sent: bool


class AuthService:
    """Orchestrates the authentication state machine.

    Login moves a caller from ANONYMOUS to SESSION_ESTABLISHED, and for
    MFA-enabled users on through PENDING_MFA to MFA_AUTHENTICATED. The MFA
    state lives on the user row, never in the session, so the gate always
    sees the latest value.

    Handles:
    - Login / MFA completion / logout
    - Signup and email confirmation
    - Password reset
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        authenticator: CredentialAuthenticator,
        session_manager: SessionManager,
        token_store: TokenStore,
        mfa_delegate: MfaDelegate,
        email_client: EmailGatewayClient,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._authenticator = authenticator
        self._session_manager = session_manager
        self._token_store = token_store
        self._mfa_delegate = mfa_delegate
        self._email_client = email_client
        self._security_logger = security_logger

    # -- Login state machine

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        """Authenticate credentials and open a session.

        Flow:
        1. Verify credentials
        2. Require a validated account
        3. Create session holding the email
        4. If MFA is required: persist PENDING, ask the delegate, persist
           CONFIRMED only if the provider reports finished enrollment

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountNotValidatedError: Email address not yet confirmed.
            TechnicalError: User or session store unreachable.
            DelegateFailureError: MFA provider failed. The user stays PENDING;
                the exception carries the session for a later re-check.
        """
        try:
            user = self._authenticator.authenticate(email, password)
        except InvalidCredentialsError:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "invalid_credentials"},
            )
            raise

        if not user.validated:
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "not_validated"},
            )
            raise AccountNotValidatedError("Account not validated, check your email")

        session = self._session_manager.create_session(user.email)
        self._security_logger.log(
            SecurityEvent.SESSION_CREATED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        if user.mfa_email is None:
            self._security_logger.log(
                SecurityEvent.LOGIN_SUCCEEDED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return LoginResult(session=session, state=LoginState.SESSION_ESTABLISHED)

        # Every login re-proves the second factor
        self._auth_db.set_mfa_state(user.id, MfaState.PENDING)
        self._security_logger.log(
            SecurityEvent.MFA_PENDING,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            state = self._check_mfa(user, ip_address)
        except DelegateFailureError as e:
            raise DelegateFailureError(str(e), session=session) from e

        return LoginResult(session=session, state=state)

    def complete_mfa(self, session_token: str, ip_address: str | None = None) -> LoginState:
        """Re-run the MFA check for a session waiting on its second factor.

        Idempotent: a confirmed user stays confirmed without another
        provider call.

        Raises:
            TechnicalError: User or session store unreachable.
            DelegateFailureError: MFA provider failed; user stays PENDING.
        """
        session = self._session_manager.get_session(session_token)
        if session is None:
            return LoginState.ANONYMOUS

        user = self._auth_db.get_user_by_email(session.email)
        if user is None:
            self._session_manager.revoke_session(session_token)
            return LoginState.ANONYMOUS

        if user.mfa_email is None:
            return LoginState.SESSION_ESTABLISHED
        if user.mfa_state is MfaState.CONFIRMED:
            return LoginState.MFA_AUTHENTICATED

        return self._check_mfa(user, ip_address)

    def _check_mfa(self, user: User, ip_address: str | None) -> LoginState:
        """Ask the delegate about user's MFA email and persist the outcome."""
        try:
            enrollment = self._mfa_delegate.check_enrollment(user.mfa_email)
        except DelegateFailureError:
            logger.exception(f"MFA check failed for user {user.id}")
            self._security_logger.log(
                SecurityEvent.MFA_DELEGATE_FAILED,
                email=user.email,
                user_id=user.id,
                ip_address=ip_address,
            )
            raise

        if not enrollment.finished:
            logger.info(f"User {user.id} remains pending MFA")
            return LoginState.PENDING_MFA

        self._auth_db.set_mfa_state(user.id, MfaState.CONFIRMED)
        self._security_logger.log(
            SecurityEvent.MFA_CONFIRMED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
        )
        return LoginState.MFA_AUTHENTICATED

    def logout(self, session_token: str, ip_address: str | None = None) -> None:
        """Revoke session (logout).

        Unconditional: safe to call with an invalid token or while the
        stores are down. Never raises.
        """
        # Try to get session info for logging before revocation
        try:
            session = self._session_manager.get_session(session_token)
            email = session.email if session else None
        except TechnicalError:
            email = None

        self._session_manager.revoke_session(session_token)

        self._security_logger.log(
            SecurityEvent.SESSION_REVOKED,
            email=email,
            ip_address=ip_address,
        )

    # -- Signup and confirmation

    def signup(
        self,
        email: str,
        fullname: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> SignupResult:
        """Create an account and send its confirmation link.

        Flow:
        1. Reject duplicate email
        2. Ask the MFA delegate whether the email finished enrollment
        3. Create user (validated only if auto_validate_signup)
        4. Issue email-confirmation token and email the link

        Raises:
            EmailAlreadyExistsError: An account already uses this email,
                including one created concurrently.
            DelegateFailureError: MFA provider failed; no user is created.
            TechnicalError: User store unreachable; no user is left behind.
        """
        if self._auth_db.get_user_by_email(email) is not None:
            raise EmailAlreadyExistsError("An account with this email already exists")

        password_hash = hash_password(password)

        enrollment = self._mfa_delegate.check_enrollment(email)
        if enrollment.finished:
            # The provider account shares the login email
            mfa_email, mfa_state = email, MfaState.PENDING
            logger.debug(f"MFA email set to {email}")
        else:
            mfa_email, mfa_state = None, MfaState.NOT_REQUIRED

        user = self._auth_db.create_user(
            email=email,
            fullname=fullname,
            password_hash=password_hash,
            validated=self._config.auto_validate_signup,
            mfa_email=mfa_email,
            mfa_state=mfa_state,
        )

        try:
            token = self._token_store.issue(user, TokenPurpose.EMAIL_CONFIRMATION, user.email)
            self._auth_db.set_confirmation_token(user.id, token.token)
        except TechnicalError:
            # An account without a confirmation token could never be validated
            logger.error(f"Confirmation token write failed, removing user {user.id}")
            self._auth_db.delete_user(user.id)
            raise
        user = user.model_copy(update={"confirmation_token": token.token})

        self._security_logger.log(
            SecurityEvent.USER_CREATED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"mfa": mfa_email is not None, "validated": user.validated},
        )

        try:
            self._email_client.send_confirmation_link(
                email=user.email,
                token=token.token,
                app_url=self._config.app_base_url,
            )
            sent = True
        except EmailGatewayError:
            logger.exception(f"Could not send confirmation email for user {user.id}")
            sent = False

        return SignupResult(user=user, confirmation_sent=sent)

    def confirm(
        self,
        token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> User:
        """Consume an email-confirmation token and validate its user.

        Checks run in order: unknown token, expired token, already validated.
        An expired token never mutates the user.

        Raises:
            TokenNotFoundError: No such confirmation token.
            TokenExpiredError: Token older than the expiry window.
            AlreadyValidatedError: User was validated before.
        """
        try:
            found = self._token_store.find(token, TokenPurpose.EMAIL_CONFIRMATION)
        except TokenNotFoundError:
            self._log_confirmation_failure("token_not_found", None, ip_address, user_agent)
            raise

        if self._token_store.is_expired(found):
            self._log_confirmation_failure("token_expired", found.email, ip_address, user_agent)
            raise TokenExpiredError("Confirmation link has expired")

        user = self._auth_db.get_user_by_id(found.user_id)
        if user is None:
            self._log_confirmation_failure("user_not_found", found.email, ip_address, user_agent)
            raise TokenNotFoundError("Unknown token")

        if user.validated:
            self._log_confirmation_failure("already_validated", user.email, ip_address, user_agent)
            raise AlreadyValidatedError("Account already validated")

        self._auth_db.set_validated(user.id)
        self._security_logger.log(
            SecurityEvent.EMAIL_CONFIRMED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return user.model_copy(update={"validated": True})

    def _log_confirmation_failure(
        self,
        reason: str,
        email: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        self._security_logger.log(
            SecurityEvent.CONFIRMATION_FAILED,
            email=email,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"reason": reason},
        )

    # -- Password reset

    def request_password_reset(
        self,
        email: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Email a password reset link if the account exists.

        Unknown emails and gateway failures look the same to the caller as
        success, so the response does not reveal which accounts exist.
        """
        user = self._auth_db.get_user_by_email(email)
        if user is None:
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "user_not_found"},
            )
            return

        token = self._token_store.issue(user, TokenPurpose.PASSWORD_RESET, user.email)
        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        try:
            self._email_client.send_password_reset_link(
                email=user.email,
                token=token.token,
                app_url=self._config.app_base_url,
            )
        except EmailGatewayError:
            logger.exception(f"Could not send password reset email for user {user.id}")

    def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Set a new password with a reset token. The token is spent on success.

        Raises:
            TokenNotFoundError: No such reset token (or already used).
            TokenExpiredError: Token older than the expiry window.
        """
        found = self._token_store.find(token, TokenPurpose.PASSWORD_RESET)

        if self._token_store.is_expired(found):
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                email=found.email,
                user_id=found.user_id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "token_expired"},
            )
            raise TokenExpiredError("Reset link has expired")

        if not self._auth_db.set_password_hash(found.user_id, hash_password(new_password)):
            raise TokenNotFoundError("Unknown token")

        self._token_store.revoke(found)
        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_COMPLETED,
            email=found.email,
            user_id=found.user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
