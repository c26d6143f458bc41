"""
Shared test fixtures and configuration.
"""

import logging
import os
import sys
from unittest.mock import MagicMock

import pytest

# Add the parent directory to the path so we can import the refreshment package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from refreshment.config import CONFIG_KEYS
from refreshment.credentials.identity import IdentityProvider
from refreshment.credentials.models import CandidateCredentials

MFA_SERIAL = "arn:aws:iam::123:mfa/user"
MFA_TOKEN = "123456"

SAMPLE_CREDENTIALS = """# managed by hand
[default]
aws_access_key_id = AKIDDEFAULT
aws_secret_access_key = defaultsecret
region=us-west-2

[refreshment_mfa]
aws_access_key_id = AKIDOLD
aws_secret_access_key = oldsecret
aws_session_token =

[other]
; keep me
aws_access_key_id=AKIDOTHER
"""

VALID_MFA_CREDENTIALS = """[default]
aws_access_key_id = AKIDDEFAULT
aws_secret_access_key = defaultsecret

[refreshment_mfa]
aws_access_key_id = AKIDCACHED
aws_secret_access_key = cachedsecret
aws_session_token = cachedtoken
"""

VALID_SUBSTRATE_CREDENTIALS = """[default]
aws_access_key_id = AKIDSTALE
aws_secret_access_key = stalesecret
aws_session_token = staletoken

[refreshment_substrate]
aws_access_key_id = AKIDSUBSTRATE
aws_secret_access_key = substratesecret
aws_session_token = substratetoken
"""


@pytest.fixture
def write_credentials(tmp_path):
    """Write a credentials file under tmp_path and return its path."""
    def _write(text=SAMPLE_CREDENTIALS, name="credentials"):
        path = tmp_path / name
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def new_credentials():
    """Credentials returned by a successful token exchange."""
    return CandidateCredentials("AKIDEXAMPLE", "secretXYZ", "sessionABC")


@pytest.fixture
def identity_provider(new_credentials):
    """IdentityProvider mock that accepts every credential and grants new ones."""
    provider = MagicMock(spec=IdentityProvider)
    provider.verify_identity.return_value = {
        "UserId": "AIDEXAMPLE",
        "Account": "123",
        "Arn": "arn:aws:iam::123:user/user",
    }
    provider.exchange_for_session_token.return_value = new_credentials
    return provider


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Point HOME at tmp_path and drop configuration environment variables."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in CONFIG_KEYS.values():
        monkeypatch.delenv(key.upper(), raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def reset_refreshment_logger():
    """Undo the CLI's logging setup so caplog sees every record."""
    yield
    logger = logging.getLogger("refreshment")
    logger.handlers = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
