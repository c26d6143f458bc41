"""
Identity Provider

Thin wrapper around the AWS STS API. It checks whether a set of credentials
is still accepted and exchanges an MFA token for temporary session
credentials. Every botocore failure comes back as an IdentityProviderError.
"""

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import IdentityProviderError
from .models import CandidateCredentials

__all__ = [
    'IdentityProvider',
    'SESSION_DURATION_SECONDS',
]

logger = logging.getLogger(__name__)

# 36 hours, the longest session STS grants to IAM users
SESSION_DURATION_SECONDS = 129600


def _wrap_error(action: str, error: Exception) -> IdentityProviderError:
    """Translate a botocore exception into an IdentityProviderError."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code")
        message = error.response.get("Error", {}).get("Message") or str(error)
        if code == IdentityProviderError.REGION_DISABLED:
            return IdentityProviderError(
                f"{action} failed, STS is not activated in this region: {code} {message}",
                code=code,
            )
        return IdentityProviderError(f"{action} failed: {code}: {message}", code=code)
    return IdentityProviderError(f"{action} failed: {error}")


class IdentityProvider:
    """
    Calls the AWS identity service (STS).

    Args:
        session: boto3 session used for the token exchange. Defaults to a new
            session, which resolves credentials through the standard chain.
        region_name: Optional region override for the STS clients
    """

    def __init__(self, session: Optional[boto3.session.Session] = None,
                 region_name: Optional[str] = None):
        self._session = session
        self.region_name = region_name

    @property
    def session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.session.Session()
        return self._session

    def verify_identity(self, credentials: CandidateCredentials) -> Dict[str, Any]:
        """
        Check that ``credentials`` are accepted by calling GetCallerIdentity.

        Returns:
            Dict[str, Any]: The caller identity (UserId, Account, Arn)

        Raises:
            IdentityProviderError: If the credentials are rejected or the call fails
        """
        try:
            client = boto3.client(
                "sts",
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
                aws_session_token=credentials.session_token,
                region_name=self.region_name,
            )
            identity = client.get_caller_identity()
        except (BotoCoreError, ClientError) as e:
            raise _wrap_error("GetCallerIdentity", e) from e

        logger.debug("Credentials belong to %s", identity.get("Arn"))
        return identity

    def exchange_for_session_token(self, mfa_serial: str, token_code: str,
                                   duration_seconds: int = SESSION_DURATION_SECONDS) -> CandidateCredentials:
        """
        Exchange an MFA token code for temporary session credentials.

        Args:
            mfa_serial: Serial number (ARN) of the MFA device
            token_code: Code currently shown by the MFA device
            duration_seconds: How long the session credentials stay valid

        Returns:
            CandidateCredentials: The new session credentials

        Raises:
            IdentityProviderError: If STS refuses the exchange or the call fails
        """
        try:
            client = self.session.client("sts", region_name=self.region_name)
            response = client.get_session_token(
                DurationSeconds=duration_seconds,
                SerialNumber=mfa_serial,
                TokenCode=token_code,
            )
        except (BotoCoreError, ClientError) as e:
            raise _wrap_error("GetSessionToken", e) from e

        credentials = CandidateCredentials.from_sts(response.get("Credentials", {}))
        if not credentials.is_complete:
            raise IdentityProviderError("GetSessionToken returned incomplete credentials")

        expiration = response["Credentials"].get("Expiration")
        if expiration:
            logger.debug("New session credentials expire at %s", expiration)
        return credentials
