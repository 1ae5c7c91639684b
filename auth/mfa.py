"""MFA delegate - decides enrollment from the provider's answer."""

import logging

from auth.exceptions import DelegateFailureError
from auth.types import MfaEnrollment
from clients.mfa_client import MfaProviderClient, MfaProviderError

logger = logging.getLogger(__name__)

FINISHED_STATE = "finished"


class MfaDelegate:
    """Asks the external provider whether an email has completed MFA enrollment.

    Only valid and registration_state == "finished" counts as complete. Any
    other answer is a normal outcome, logged, not an error. Provider failures
    (including timeouts) become DelegateFailureError; this never admits a
    user by default.
    """

    def __init__(self, client: MfaProviderClient):
        self._client = client

    def check_enrollment(self, email: str) -> MfaEnrollment:
        """Return the provider's view of email.

        Raises:
            DelegateFailureError: Provider unreachable, timed out or malformed.
        """
        try:
            body = self._client.is_user_valid(email)
        except MfaProviderError as e:
            raise DelegateFailureError("MFA provider unavailable") from e

        valid = body.get("valid")
        state = body.get("registration_state")
        if not isinstance(valid, bool):
            logger.error(f"MFA provider response missing boolean 'valid': {body!r}")
            raise DelegateFailureError("Malformed MFA provider response")

        finished = valid and state == FINISHED_STATE
        if valid and not finished:
            logger.warning(f"User {email} started MFA registration but has not finished")
        elif not valid:
            logger.debug(f"User {email} is not enrolled with the MFA provider")

        return MfaEnrollment(enrolled=valid, finished=finished)
