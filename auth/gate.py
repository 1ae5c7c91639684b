"""Session gate - the per-request admit/reject decision."""

import logging

from auth.database import AuthDatabase
from auth.types import GateDecision, MfaState

logger = logging.getLogger(__name__)


class SessionGate:
    """Decides whether a session email may pass.

    1. No email in the session: reject.
    2. Email matches no user: reject and ask the caller to clear the session.
    3. User has mfa_email but MFA is not confirmed: reject.
    4. Otherwise admit.

    User state is read fresh on every call. Holds no mutable state, so one
    instance serves concurrent requests.
    """

    def __init__(self, auth_db: AuthDatabase):
        self._auth_db = auth_db

    def check(self, email: str | None) -> GateDecision:
        """Run one decision.

        Raises:
            TechnicalError: User store unreachable.
        """
        if not email:
            return GateDecision(admitted=False, reason="no_session")

        user = self._auth_db.get_user_by_email(email)

        if user is None:
            logger.debug("Clearing session for unknown user")
            return GateDecision(admitted=False, clear_session=True, reason="unknown_user")

        if user.mfa_email is not None and user.mfa_state is not MfaState.CONFIRMED:
            logger.debug("User has MFA enabled but is not MFA authenticated")
            return GateDecision(admitted=False, reason="mfa_incomplete")

        return GateDecision(admitted=True, email=user.email)
