"""
Errors raised by refreshment.

The library raises these; the command-line layer reports them and decides
the exit status.
"""

from typing import Optional


class RefreshmentError(Exception):
    """Base class for all refreshment errors."""


class ConfigurationError(RefreshmentError):
    """Required mode parameters are missing or contradictory."""


class CredentialsFileError(RefreshmentError):
    """The home directory or the credentials file could not be used."""


class IdentityProviderError(RefreshmentError):
    """A call to the identity provider (STS) failed."""

    REGION_DISABLED = "RegionDisabledException"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code

    @property
    def region_disabled(self) -> bool:
        return self.code == self.REGION_DISABLED


class DelegatedExecutionError(RefreshmentError):
    """The delegated credential helper could not be started."""
