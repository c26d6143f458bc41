"""
Tests for the reuse-or-refresh flow.
"""

import logging
from unittest.mock import MagicMock

import pytest

from conftest import (
    MFA_SERIAL,
    MFA_TOKEN,
    SAMPLE_CREDENTIALS,
    VALID_MFA_CREDENTIALS,
    VALID_SUBSTRATE_CREDENTIALS,
)
from refreshment.credentials.credential_file import CredentialFile
from refreshment.credentials.models import CandidateCredentials
from refreshment.credentials.refresher import (
    DelegatedBinaryMode,
    MfaMode,
    RefreshOutcome,
    refresh,
    resolve_mode,
)
from refreshment.exceptions import (
    ConfigurationError,
    CredentialsFileError,
    DelegatedExecutionError,
    IdentityProviderError,
)


@pytest.fixture
def runner():
    """Mock Substrate runner."""
    return MagicMock(return_value=0)


def test_mfa_reuses_valid_credentials(write_credentials, identity_provider, caplog):
    """Test that valid cached MFA credentials are copied to nlk_corp without a new token."""
    caplog.set_level(logging.INFO, logger="refreshment")
    path = write_credentials(VALID_MFA_CREDENTIALS)

    result = refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), credentials_path=path,
                     identity_provider=identity_provider)

    assert result.outcome is RefreshOutcome.REUSED
    assert result.profiles == ("nlk_corp",)
    identity_provider.verify_identity.assert_called_once_with(
        CandidateCredentials("AKIDCACHED", "cachedsecret", "cachedtoken")
    )
    identity_provider.exchange_for_session_token.assert_not_called()

    cfg = CredentialFile.load(path)
    assert cfg.get_credentials("nlk_corp") == CandidateCredentials("AKIDCACHED", "cachedsecret", "cachedtoken")
    assert cfg.section("default") == {
        "aws_access_key_id": "AKIDDEFAULT",
        "aws_secret_access_key": "defaultsecret",
    }
    assert path.read_text().startswith(VALID_MFA_CREDENTIALS)
    assert "Found configuration for refreshment_mfa" in caplog.text
    assert "Existing credentials are valid, updating nlk_corp!" in caplog.text


def test_mfa_incomplete_section_exchanges_token(write_credentials, identity_provider):
    """Test that an empty session token triggers a token exchange and a dual write."""
    path = write_credentials(SAMPLE_CREDENTIALS)

    result = refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), credentials_path=path,
                     identity_provider=identity_provider)

    assert result.outcome is RefreshOutcome.REFRESHED
    assert result.profiles == ("nlk_corp", "refreshment_mfa")
    identity_provider.verify_identity.assert_not_called()
    identity_provider.exchange_for_session_token.assert_called_once_with(MFA_SERIAL, MFA_TOKEN, 129600)

    cfg = CredentialFile.load(path)
    expected = CandidateCredentials("AKIDEXAMPLE", "secretXYZ", "sessionABC")
    assert cfg.get_credentials("nlk_corp") == expected
    assert cfg.get_credentials("refreshment_mfa") == expected
    assert cfg.section("default") == {
        "aws_access_key_id": "AKIDDEFAULT",
        "aws_secret_access_key": "defaultsecret",
        "region": "us-west-2",
    }
    assert cfg.section("other") == {"aws_access_key_id": "AKIDOTHER"}


def test_mfa_invalid_cached_credentials_exchanges_token(write_credentials, identity_provider, caplog):
    """Test that rejected cached credentials fall through to the token exchange."""
    caplog.set_level(logging.INFO, logger="refreshment")
    identity_provider.verify_identity.side_effect = IdentityProviderError(
        "GetCallerIdentity failed: ExpiredToken: expired", code="ExpiredToken"
    )
    path = write_credentials(VALID_MFA_CREDENTIALS)

    result = refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), credentials_path=path,
                     identity_provider=identity_provider)

    assert result.outcome is RefreshOutcome.REFRESHED
    identity_provider.exchange_for_session_token.assert_called_once()
    cfg = CredentialFile.load(path)
    assert cfg.get_credentials("refreshment_mfa").access_key_id == "AKIDEXAMPLE"
    assert "Existing credentials are not valid" in caplog.text


def test_mfa_failed_exchange_writes_nothing(write_credentials, identity_provider):
    """Test that a failed token exchange leaves the credentials file untouched."""
    identity_provider.exchange_for_session_token.side_effect = IdentityProviderError(
        "GetSessionToken failed: AccessDenied: invalid MFA one time pass code", code="AccessDenied"
    )
    path = write_credentials(SAMPLE_CREDENTIALS)

    with pytest.raises(IdentityProviderError):
        refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), credentials_path=path,
                identity_provider=identity_provider)

    assert path.read_text() == SAMPLE_CREDENTIALS


def test_substrate_reuses_valid_credentials(write_credentials, identity_provider, runner):
    """Test that valid cached Substrate credentials are promoted to default."""
    path = write_credentials(VALID_SUBSTRATE_CREDENTIALS)

    result = refresh(DelegatedBinaryMode("/bin/substrate", "/src/infra"), credentials_path=path,
                     identity_provider=identity_provider, runner=runner)

    assert result.outcome is RefreshOutcome.REUSED
    assert result.profiles == ("default",)
    runner.assert_not_called()
    identity_provider.exchange_for_session_token.assert_not_called()

    cfg = CredentialFile.load(path)
    assert cfg.get_credentials("default") == CandidateCredentials(
        "AKIDSUBSTRATE", "substratesecret", "substratetoken"
    )


def test_substrate_incomplete_section_runs_helper(write_credentials, identity_provider, runner):
    """Test that Substrate runs when there are no cached credentials, without writing the file."""
    runner.return_value = 2
    path = write_credentials(SAMPLE_CREDENTIALS)

    result = refresh(DelegatedBinaryMode("/bin/substrate", "/src/infra"), credentials_path=path,
                     identity_provider=identity_provider, runner=runner)

    assert result.outcome is RefreshOutcome.DELEGATED
    assert result.exit_code == 2
    runner.assert_called_once_with("/bin/substrate", "/src/infra")
    identity_provider.verify_identity.assert_not_called()
    identity_provider.exchange_for_session_token.assert_not_called()
    assert path.read_text() == SAMPLE_CREDENTIALS


def test_substrate_helper_cannot_start(write_credentials, identity_provider, runner):
    """Test that a helper start failure propagates and nothing is written."""
    runner.side_effect = DelegatedExecutionError("Could not run /bin/substrate")
    path = write_credentials(SAMPLE_CREDENTIALS)

    with pytest.raises(DelegatedExecutionError):
        refresh(DelegatedBinaryMode("/bin/substrate", "/src/infra"), credentials_path=path,
                identity_provider=identity_provider, runner=runner)

    assert path.read_text() == SAMPLE_CREDENTIALS


def test_missing_credentials_file(tmp_path, identity_provider, runner):
    """Test that a missing credentials file fails before any provider call."""
    with pytest.raises(CredentialsFileError):
        refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), credentials_path=tmp_path / "credentials",
                identity_provider=identity_provider, runner=runner)

    identity_provider.verify_identity.assert_not_called()
    identity_provider.exchange_for_session_token.assert_not_called()


def test_default_credentials_path_is_used(monkeypatch, tmp_path, identity_provider):
    """Test that ~/.aws/credentials is used when no path is given."""
    monkeypatch.setenv("HOME", str(tmp_path))
    aws_dir = tmp_path / ".aws"
    aws_dir.mkdir()
    (aws_dir / "credentials").write_text(VALID_MFA_CREDENTIALS)

    result = refresh(MfaMode(MFA_SERIAL, MFA_TOKEN), identity_provider=identity_provider)

    assert result.credentials_path == aws_dir / "credentials"
    assert CredentialFile.load(aws_dir / "credentials").has_section("nlk_corp")


def test_unknown_mode(write_credentials, identity_provider):
    """Test that refresh only accepts the two known modes."""
    with pytest.raises(ConfigurationError):
        refresh("mfa", credentials_path=write_credentials(), identity_provider=identity_provider)


def test_resolve_mode_mfa():
    mode = resolve_mode(mfa_serial=MFA_SERIAL, token=MFA_TOKEN)

    assert isinstance(mode, MfaMode)
    assert mode.working_profile == "refreshment_mfa"
    assert mode.target_profile == "nlk_corp"


def test_resolve_mode_substrate():
    mode = resolve_mode(path_to_substrate="/bin/substrate", terraform_root_path="/src/infra")

    assert isinstance(mode, DelegatedBinaryMode)
    assert mode.working_profile == "refreshment_substrate"
    assert mode.target_profile == "default"


@pytest.mark.parametrize("kwargs, message", [
    ({}, "Please pass --mfaSerial and --token"),
    ({"mfa_serial": MFA_SERIAL}, "token generated by your MFA device"),
    ({"token": MFA_TOKEN}, "serial number"),
    ({"mfa_serial": MFA_SERIAL, "token": "abc123"}, "must be numeric"),
    ({"path_to_substrate": "/bin/substrate"}, "root Substrate directory"),
    ({"terraform_root_path": "/src/infra"}, "location of the Substrate binary"),
    ({"mfa_serial": MFA_SERIAL, "token": MFA_TOKEN, "path_to_substrate": "/bin/substrate"}, "not both"),
])
def test_resolve_mode_configuration_errors(kwargs, message):
    """Test that missing, partial or contradictory parameters are rejected."""
    with pytest.raises(ConfigurationError, match=message):
        resolve_mode(**kwargs)
