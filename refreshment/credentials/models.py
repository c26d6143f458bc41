"""
In-memory credential records.
"""

from typing import Any, Dict, Optional

ACCESS_KEY_ID = "aws_access_key_id"
SECRET_ACCESS_KEY = "aws_secret_access_key"
SESSION_TOKEN = "aws_session_token"

CREDENTIAL_KEYS = (ACCESS_KEY_ID, SECRET_ACCESS_KEY, SESSION_TOKEN)


class CandidateCredentials:
    """A set of temporary AWS credentials that may or may not still be valid."""

    def __init__(self, access_key_id: Optional[str] = None,
                 secret_access_key: Optional[str] = None,
                 session_token: Optional[str] = None):
        self.access_key_id = access_key_id or ""
        self.secret_access_key = secret_access_key or ""
        self.session_token = session_token or ""

    @classmethod
    def from_section(cls, values: Dict[str, str]) -> "CandidateCredentials":
        """Build credentials from the key/value pairs of a profile section."""
        return cls(
            access_key_id=values.get(ACCESS_KEY_ID),
            secret_access_key=values.get(SECRET_ACCESS_KEY),
            session_token=values.get(SESSION_TOKEN),
        )

    @classmethod
    def from_sts(cls, credentials: Dict[str, Any]) -> "CandidateCredentials":
        """Build credentials from the ``Credentials`` block of an STS response."""
        return cls(
            access_key_id=credentials.get("AccessKeyId"),
            secret_access_key=credentials.get("SecretAccessKey"),
            session_token=credentials.get("SessionToken"),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key and self.session_token)

    def as_profile(self) -> Dict[str, str]:
        """Return the values keyed the way the credentials file names them."""
        return {
            ACCESS_KEY_ID: self.access_key_id,
            SECRET_ACCESS_KEY: self.secret_access_key,
            SESSION_TOKEN: self.session_token,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CandidateCredentials):
            return NotImplemented
        return self.as_profile() == other.as_profile()

    def __str__(self) -> str:
        """Return a representation safe to log."""
        secret = "****" if self.secret_access_key else "<empty>"
        token = "****" if self.session_token else "<empty>"
        key_id = self.access_key_id or "<empty>"
        return f"{key_id} (secret: {secret}, session token: {token})"

    __repr__ = __str__
