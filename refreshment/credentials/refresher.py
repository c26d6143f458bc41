"""
Credential Refresher

Decides whether the cached credentials of a working profile can be reused or
must be refreshed, and updates the credentials file accordingly.

Two refresh modes are supported:

- MfaMode: exchange an MFA token code for a temporary STS session
- DelegatedBinaryMode: let the Substrate helper derive credentials itself
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from ..exceptions import ConfigurationError, IdentityProviderError
from .credential_file import CredentialFile, default_credentials_path
from .identity import SESSION_DURATION_SECONDS, IdentityProvider
from .models import CandidateCredentials
from .substrate import run_substrate

__all__ = [
    'MfaMode',
    'DelegatedBinaryMode',
    'RefreshOutcome',
    'RefreshResult',
    'refresh',
    'resolve_mode',
]

logger = logging.getLogger(__name__)

MFA_PROFILE = "refreshment_mfa"
MFA_TARGET_PROFILE = "nlk_corp"
SUBSTRATE_PROFILE = "refreshment_substrate"
SUBSTRATE_TARGET_PROFILE = "default"


class MfaMode:
    """Refresh by exchanging an MFA token code for session credentials."""

    working_profile = MFA_PROFILE
    target_profile = MFA_TARGET_PROFILE
    description = "MFA-based creds"

    def __init__(self, mfa_serial: str, token: str):
        if not mfa_serial:
            raise ConfigurationError("Error: Please pass the serial number (ARN) of your MFA device!")
        if not token:
            raise ConfigurationError("Error: Please pass the token generated by your MFA device!")
        if not token.isdigit():
            raise ConfigurationError(f"Error: MFA token must be numeric, got '{token}'")
        self.mfa_serial = mfa_serial
        self.token = token

    def __repr__(self) -> str:
        return f"MfaMode(mfa_serial={self.mfa_serial!r})"


class DelegatedBinaryMode:
    """Refresh by invoking the Substrate credential helper."""

    working_profile = SUBSTRATE_PROFILE
    target_profile = SUBSTRATE_TARGET_PROFILE
    description = "Substrate-based creds"

    def __init__(self, path_to_substrate: Union[str, Path], terraform_root_path: Union[str, Path]):
        if not path_to_substrate:
            raise ConfigurationError("Error: Please pass the location of the Substrate binary!")
        if not terraform_root_path:
            raise ConfigurationError("Error: Please pass the location of your root Substrate directory!")
        self.path_to_substrate = path_to_substrate
        self.terraform_root_path = terraform_root_path

    def __repr__(self) -> str:
        return (f"DelegatedBinaryMode(path_to_substrate={str(self.path_to_substrate)!r}, "
                f"terraform_root_path={str(self.terraform_root_path)!r})")


RefreshMode = Union[MfaMode, DelegatedBinaryMode]


class RefreshOutcome(Enum):
    REUSED = "reused"
    REFRESHED = "refreshed"
    DELEGATED = "delegated"


class RefreshResult:
    """What a refresh did."""

    def __init__(self, outcome: RefreshOutcome, profiles=(), exit_code: Optional[int] = None,
                 credentials_path: Optional[Path] = None):
        self.outcome = outcome
        self.profiles = tuple(profiles)
        self.exit_code = exit_code
        self.credentials_path = credentials_path

    def __str__(self) -> str:
        if self.outcome is RefreshOutcome.REUSED:
            return f"Swapped in existing credentials for {', '.join(self.profiles)}, rock n' roll 🎸"
        if self.outcome is RefreshOutcome.REFRESHED:
            return f"Generated new credentials for {', '.join(self.profiles)}"
        return f"Substrate finished with exit code {self.exit_code}"


def resolve_mode(mfa_serial: Optional[str] = None, token: Optional[str] = None,
                 path_to_substrate: Optional[str] = None,
                 terraform_root_path: Optional[str] = None) -> RefreshMode:
    """
    Pick exactly one refresh mode from loosely supplied parameters.

    Raises:
        ConfigurationError: If no mode, both modes, or only part of a mode is given
    """
    wants_mfa = bool(mfa_serial or token)
    wants_substrate = bool(path_to_substrate or terraform_root_path)

    if wants_mfa and wants_substrate:
        raise ConfigurationError(
            "Error: Pass either --mfaSerial/--token or --pathToSubstrate/--terraformRootPath, not both!"
        )
    if wants_mfa:
        return MfaMode(mfa_serial or "", token or "")
    if wants_substrate:
        return DelegatedBinaryMode(path_to_substrate or "", terraform_root_path or "")
    raise ConfigurationError(
        "Error: Please pass --mfaSerial and --token, or --pathToSubstrate and --terraformRootPath!"
    )


def _reuse_existing(cfg: CredentialFile, mode: RefreshMode,
                    identity_provider: IdentityProvider) -> Optional[CandidateCredentials]:
    """Return the working profile's credentials if they are complete and still valid."""
    existing = cfg.get_credentials(mode.working_profile)
    if not existing.is_complete:
        logger.info("Credentials values are empty, generating new creds!")
        return None

    logger.info("Found configuration for %s", mode.working_profile)
    try:
        identity_provider.verify_identity(existing)
    except IdentityProviderError as e:
        logger.info("Existing credentials are not valid (%s), generating new creds!", e)
        return None
    return existing


def refresh(mode: RefreshMode, credentials_path: Optional[Union[str, Path]] = None,
            identity_provider: Optional[IdentityProvider] = None,
            runner: Optional[Callable[..., int]] = None) -> RefreshResult:
    """
    Refresh the credentials for ``mode`` and persist them.

    Args:
        mode: MfaMode or DelegatedBinaryMode
        credentials_path: Credentials file to update (default: ~/.aws/credentials)
        identity_provider: STS wrapper used for verification and token exchange
        runner: Callable invoking the Substrate helper (default: run_substrate)

    Returns:
        RefreshResult: What was done

    Raises:
        ConfigurationError: If ``mode`` is not a known refresh mode
        CredentialsFileError: If the credentials file cannot be located, read or written
        IdentityProviderError: If the MFA token exchange fails
        DelegatedExecutionError: If the Substrate helper cannot be started
    """
    if not isinstance(mode, (MfaMode, DelegatedBinaryMode)):
        raise ConfigurationError(f"Unknown refresh mode: {mode!r}")

    logger.info("Using %s", mode.description)
    path = Path(credentials_path).expanduser() if credentials_path else default_credentials_path()
    cfg = CredentialFile.load(path)
    identity_provider = identity_provider or IdentityProvider()

    # Do we already have valid credentials we can swap to?
    existing = _reuse_existing(cfg, mode, identity_provider)
    if existing is not None:
        logger.info("Existing credentials are valid, updating %s!", mode.target_profile)
        cfg.set_credentials(mode.target_profile, existing)
        cfg.save()
        return RefreshResult(RefreshOutcome.REUSED, profiles=[mode.target_profile],
                             credentials_path=path)

    if isinstance(mode, MfaMode):
        credentials = identity_provider.exchange_for_session_token(
            mode.mfa_serial, mode.token, SESSION_DURATION_SECONDS
        )
        profiles = [MFA_TARGET_PROFILE, MFA_PROFILE]
        for profile_name in profiles:
            cfg.set_credentials(profile_name, credentials)
        cfg.save()
        logger.info("Wrote new session credentials to %s", ", ".join(profiles))
        return RefreshResult(RefreshOutcome.REFRESHED, profiles=profiles, credentials_path=path)

    # TODO: capture the helper's stdout and write the credentials it prints
    # into the substrate profiles, the way the MFA path does.
    runner = runner or run_substrate
    exit_code = runner(mode.path_to_substrate, mode.terraform_root_path)
    return RefreshResult(RefreshOutcome.DELEGATED, exit_code=exit_code, credentials_path=path)

