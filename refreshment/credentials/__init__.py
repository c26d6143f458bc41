"""
AWS credential refresh: the credentials file model, the STS identity
provider, the Substrate helper runner, and the refresh flow tying them together.
"""

from .models import CandidateCredentials
from .credential_file import CredentialFile, default_credentials_path
from .identity import IdentityProvider, SESSION_DURATION_SECONDS
from .substrate import run_substrate
from .refresher import (
    MfaMode,
    DelegatedBinaryMode,
    RefreshOutcome,
    RefreshResult,
    refresh,
    resolve_mode
)

__all__ = [
    'CandidateCredentials',
    'CredentialFile',
    'default_credentials_path',
    'IdentityProvider',
    'SESSION_DURATION_SECONDS',
    'run_substrate',
    'MfaMode',
    'DelegatedBinaryMode',
    'RefreshOutcome',
    'RefreshResult',
    'refresh',
    'resolve_mode',
]
