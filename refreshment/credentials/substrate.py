"""
Runs the delegated credential helper (Substrate).

The helper derives credentials on its own and talks to the user directly:
it inherits this process's stdin, stdout and stderr, and its output is not
captured.
"""

import logging
import subprocess
from pathlib import Path
from typing import Union

from ..exceptions import DelegatedExecutionError

__all__ = [
    'run_substrate',
    'SUBSTRATE_COMMAND',
]

logger = logging.getLogger(__name__)

SUBSTRATE_COMMAND = "credentials"


def run_substrate(path_to_substrate: Union[str, Path],
                  terraform_root_path: Union[str, Path]) -> int:
    """
    Invoke ``<path_to_substrate> credentials`` inside ``terraform_root_path``.

    Args:
        path_to_substrate: Location of the Substrate binary
        terraform_root_path: Substrate root directory (containing modules/ and root-modules/)

    Returns:
        int: The helper's exit code

    Raises:
        DelegatedExecutionError: If the helper cannot be started
    """
    root = Path(terraform_root_path).expanduser()
    if not root.is_dir():
        raise DelegatedExecutionError(f"Substrate root directory not found: {root}")

    cmd = [str(Path(path_to_substrate).expanduser()), SUBSTRATE_COMMAND]
    logger.info("Invoking %s", cmd[0])
    try:
        # stdin/stdout/stderr default to the parent's streams
        result = subprocess.run(cmd, cwd=str(root))
    except OSError as e:
        raise DelegatedExecutionError(f"Could not run {cmd[0]}: {e}") from e

    if result.returncode != 0:
        logger.warning("%s exited with status %d", cmd[0], result.returncode)
    return result.returncode
