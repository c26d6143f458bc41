"""
Refreshment CLI

Update your AWS credentials with your MFA token, or through Substrate.
Progress and errors go to stderr; the credentials end up in
~/.aws/credentials.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import load_settings
from .credentials import IdentityProvider, refresh, resolve_mode
from .exceptions import (
    ConfigurationError,
    CredentialsFileError,
    DelegatedExecutionError,
    IdentityProviderError,
)

logger = logging.getLogger("refreshment")

EXIT_OK = 0
EXIT_FAILURE = 1


def setup_logging(verbose: bool = False) -> None:
    """Send refreshment's log lines to stderr without decoration."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refreshment",
        description=(
            "Refreshment is a pleasant tool to automatically renew your AWS credentials "
            "with a new token from your multifactor auth device. It will update your "
            "default profile in ~/.aws/credentials."
        ),
    )
    parser.add_argument("--config", help="config file (default is $HOME/.refreshment.yaml)")
    parser.add_argument("--mfaSerial", "-m", dest="mfa_serial",
                        help="Serial Number (ARN) of your MFA device")
    parser.add_argument("--token", "-t", dest="token",
                        help="Generated token from your MFA device")
    parser.add_argument("--pathToSubstrate", "-p", dest="path_to_substrate",
                        help="Location of your substrate binary")
    parser.add_argument("--terraformRootPath", "-r", dest="terraform_root_path",
                        help="Location of your substrate root (containing your modules/ and root-modules/)")
    parser.add_argument("--credentialsFile", "-c", dest="credentials_file",
                        help="AWS credentials file to update (default is $HOME/.aws/credentials)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")
    parser.add_argument("--strict", action="store_true",
                        help="Exit non-zero on every failure, not only on credentials file errors")
    return parser


def run(args: argparse.Namespace, identity_provider: Optional[IdentityProvider] = None) -> int:
    """Run one refresh from parsed arguments and return the exit code."""
    soft_failure = EXIT_FAILURE if args.strict else EXIT_OK

    settings = load_settings(
        flags={
            "mfa_serial": args.mfa_serial,
            "token": args.token,
            "path_to_substrate": args.path_to_substrate,
            "terraform_root_path": args.terraform_root_path,
            "credentials_file": args.credentials_file,
        },
        config_file=args.config,
    )
    logger.debug("%r", settings)

    if settings.config_error and args.strict:
        logger.error("❌ %s", settings.config_error)
        return EXIT_FAILURE

    try:
        mode = resolve_mode(
            mfa_serial=settings.mfa_serial,
            token=settings.token,
            path_to_substrate=settings.path_to_substrate,
            terraform_root_path=settings.terraform_root_path,
        )
        result = refresh(mode, credentials_path=settings.credentials_file,
                         identity_provider=identity_provider)
    except CredentialsFileError as e:
        logger.error("❌ %s", e)
        return EXIT_FAILURE
    except (ConfigurationError, IdentityProviderError, DelegatedExecutionError) as e:
        logger.error("❌ %s", e)
        return soft_failure

    logger.info("✅ %s", result)
    if args.strict and result.exit_code:
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
