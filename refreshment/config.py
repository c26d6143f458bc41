"""
Configuration for refreshment.

Settings are merged from three places, highest priority first:

1. Command-line flags
2. Environment variables named after the configuration key in upper case
   (``MFASERIAL``, ``TOKEN``, ``PATHTOSUBSTRATE``, ``TERRAFORMROOTPATH``,
   ``CREDENTIALSFILE``)
3. A YAML config file, ``~/.refreshment.yaml`` unless ``--config`` says otherwise

The refresh mode is chosen by the highest-priority source that names one, so
``-p/-r`` on the command line win over an ``mfaSerial`` kept in the config
file. A config file that is missing or invalid is reported and skipped.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .exceptions import ConfigurationError

__all__ = [
    'Settings',
    'load_settings',
    'load_config_file',
    'default_config_path',
    'CONFIG_KEYS',
]

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".refreshment.yaml"

# Settings attribute -> configuration key (same spelling as the CLI flag)
CONFIG_KEYS = {
    "mfa_serial": "mfaSerial",
    "token": "token",
    "path_to_substrate": "pathToSubstrate",
    "terraform_root_path": "terraformRootPath",
    "credentials_file": "credentialsFile",
}

MFA_ATTRS = ("mfa_serial", "token")
SUBSTRATE_ATTRS = ("path_to_substrate", "terraform_root_path")


class Settings:
    """Explicit configuration handed to the refresh operation."""

    def __init__(self, mfa_serial: Optional[str] = None, token: Optional[str] = None,
                 path_to_substrate: Optional[str] = None,
                 terraform_root_path: Optional[str] = None,
                 credentials_file: Optional[str] = None,
                 config_file_used: Optional[Path] = None,
                 config_error: Optional[str] = None):
        self.mfa_serial = mfa_serial
        self.token = token
        self.path_to_substrate = path_to_substrate
        self.terraform_root_path = terraform_root_path
        self.credentials_file = credentials_file
        self.config_file_used = config_file_used
        self.config_error = config_error

    def __repr__(self) -> str:
        token = "****" if self.token else None
        return (f"Settings(mfa_serial={self.mfa_serial!r}, token={token!r}, "
                f"path_to_substrate={self.path_to_substrate!r}, "
                f"terraform_root_path={self.terraform_root_path!r}, "
                f"credentials_file={self.credentials_file!r})")


def default_config_path() -> Optional[Path]:
    """Get ~/.refreshment.yaml, or None when there is no home directory."""
    try:
        return Path.home() / DEFAULT_CONFIG_NAME
    except (RuntimeError, KeyError):
        return None


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML config file into a dict.

    Raises:
        ConfigurationError: If the file cannot be read or is not a YAML mapping
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file {path}: expected a mapping of settings")
    return data


def _as_str(value: Any) -> Optional[str]:
    # YAML hands back ints for unquoted numeric values
    if value is None or value == "":
        return None
    return str(value)


def _read_config_layer(config_file: Optional[str]) -> Tuple[Dict[str, Any], Optional[Path], Optional[str]]:
    """
    Load the config file, if any.

    A missing or broken config file never stops a refresh: the problem is
    logged and returned so the caller can decide how loud to be about it.

    Returns:
        Tuple of (values, path used, error message)
    """
    if config_file:
        path = Path(config_file).expanduser()
        if not path.is_file():
            error = f"Config file not found: {path}"
            logger.warning("Ignoring config file: %s", error)
            return {}, None, error
    else:
        path = default_config_path()
        if path is None or not path.is_file():
            return {}, None, None

    try:
        values = load_config_file(path)
    except ConfigurationError as e:
        logger.warning("Ignoring config file: %s", e)
        return {}, None, str(e)

    logger.info("Using config file: %s", path)
    return values, path, None


def _pick_mode_attrs(layers: List[Dict[str, Optional[str]]]) -> Tuple[str, ...]:
    """
    Choose which mode's settings apply.

    The highest-priority layer that names either mode decides; settings of the
    other mode from lower layers are dropped. A layer naming both modes keeps
    both so that mode resolution reports the conflict.
    """
    for layer in layers:
        names_mfa = any(layer.get(attr) for attr in MFA_ATTRS)
        names_substrate = any(layer.get(attr) for attr in SUBSTRATE_ATTRS)
        if names_mfa and names_substrate:
            break
        if names_mfa:
            return MFA_ATTRS
        if names_substrate:
            return SUBSTRATE_ATTRS
    return MFA_ATTRS + SUBSTRATE_ATTRS


def load_settings(flags: Optional[Mapping[str, Any]] = None,
                  config_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Merge CLI flags, environment variables and the config file into Settings.

    Args:
        flags: Flag values keyed by Settings attribute name; None means "not set"
        config_file: Explicit config file path (the --config flag)
        environ: Environment to read (default: os.environ)
    """
    flags = flags or {}
    environ = os.environ if environ is None else environ
    file_values, config_file_used, config_error = _read_config_layer(config_file)

    layers = [
        {attr: _as_str(flags.get(attr)) for attr in CONFIG_KEYS},
        {attr: _as_str(environ.get(key.upper())) for attr, key in CONFIG_KEYS.items()},
        {attr: _as_str(file_values.get(key)) for attr, key in CONFIG_KEYS.items()},
    ]
    mode_attrs = _pick_mode_attrs(layers)

    values = {}
    for attr in CONFIG_KEYS:
        if attr in MFA_ATTRS + SUBSTRATE_ATTRS and attr not in mode_attrs:
            values[attr] = None
            continue
        values[attr] = next((layer[attr] for layer in layers if layer[attr] is not None), None)

    return Settings(config_file_used=config_file_used, config_error=config_error, **values)
