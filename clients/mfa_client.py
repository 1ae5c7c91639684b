"""
MFA provider client.

Asks the provider whether an email has an enrolled second factor.
One endpoint: POST {site_url}/api/v9/is_user_valid, form-encoded
email/uid/secret, JSON reply {"valid": bool, "registration_state": str}.

Every call carries a timeout. A hung provider becomes MfaProviderError,
never a hung request.
"""

import logging

import requests

from auth.config import MfaConfig

logger = logging.getLogger(__name__)


class MfaProviderError(Exception):
    """Raised when the MFA provider is unreachable or answers nonsense."""


class MfaProviderClient:
    """HTTP client for the MFA provider's user-validity endpoint."""

    IS_USER_VALID_PATH = "/api/v9/is_user_valid"

    def __init__(self, config: MfaConfig, session: requests.Session | None = None):
        self._config = config
        self._http = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return self._config.site_url.rstrip("/") + self.IS_USER_VALID_PATH

    def is_user_valid(self, email: str) -> dict:
        """
        Look up provider-side enrollment for email.

        Returns:
            The decoded JSON object, e.g. {"valid": true, "registration_state": "finished"}

        Raises:
            MfaProviderError: On timeout, connection failure, non-200 status,
                or a body that is not a JSON object.
        """
        form = {
            "email": email,
            "uid": self._config.app_uid,
            "secret": self._config.app_secret,
        }

        try:
            response = self._http.post(
                self.endpoint,
                data=form,
                timeout=self._config.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"MFA provider timed out after {self._config.timeout_seconds}s: {e}")
            raise MfaProviderError("Provider timed out")
        except (requests.exceptions.RequestException, ConnectionError) as e:
            logger.error(f"MFA provider connection failed: {e}")
            raise MfaProviderError(f"Connection failed: {e}")

        if response.status_code != 200:
            logger.error(f"MFA provider returned HTTP {response.status_code}")
            raise MfaProviderError(f"Provider returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            logger.error("MFA provider returned invalid JSON")
            raise MfaProviderError("Invalid response from provider")

        if not isinstance(body, dict):
            logger.error(f"MFA provider returned {type(body).__name__}, expected object")
            raise MfaProviderError("Invalid response from provider")

        return body
