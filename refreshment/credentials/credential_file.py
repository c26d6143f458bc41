"""
AWS Credentials File

This module loads the shared AWS credentials file, exposes its profile
sections, and writes updated credentials back to disk. Only the keys that
were updated are rewritten; every other line of the file (other sections,
unknown keys, comments, blank lines) is written back exactly as it was read.
"""

import configparser
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..exceptions import CredentialsFileError
from .models import CREDENTIAL_KEYS, CandidateCredentials

__all__ = [
    'CredentialFile',
    'default_credentials_path',
]

logger = logging.getLogger(__name__)

# Same header pattern configparser uses, applied to the stripped line.
_SECTION_RE = re.compile(r"\[(?P<header>.+)\]")
_OPTION_RE = re.compile(r"(?P<indent>\s*)(?P<key>[^=:\s][^=:]*?)\s*[=:]")
_COMMENT_PREFIXES = ("#", ";")


def default_credentials_path() -> Path:
    """
    Get the path to the AWS credentials file in the user's home directory.

    Raises:
        CredentialsFileError: If the home directory cannot be determined
    """
    try:
        aws_dir = Path.home() / ".aws"
    except (RuntimeError, KeyError) as e:
        raise CredentialsFileError(f"Could not read homedir: {e}") from e
    return aws_dir / "credentials"


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip())


def _is_comment(stripped: str) -> bool:
    return stripped.startswith(_COMMENT_PREFIXES)


class CredentialFile:
    """
    An AWS credentials file loaded into memory.

    Updates made through :meth:`set_credentials` are held in memory until
    :meth:`save` is called, which writes the whole file once.
    """

    def __init__(self, text: str, path: Optional[Path] = None):
        self.path = path
        self._text = text
        self._newline = "\r\n" if "\r\n" in text else "\n"
        self._updates: Dict[str, Dict[str, str]] = {}
        # strict=False merges duplicate sections and keys, last value wins
        self._parser = configparser.ConfigParser(interpolation=None, strict=False)
        try:
            self._parser.read_string(text, source=str(path) if path else "<string>")
        except configparser.Error as e:
            raise CredentialsFileError(f"Fail to read aws credentials file: {e}") from e

    @classmethod
    def load(cls, path: Union[str, Path]) -> "CredentialFile":
        """
        Read and parse the credentials file at ``path``.

        Raises:
            CredentialsFileError: If the file is missing, unreadable or malformed
        """
        path = Path(path).expanduser()
        try:
            with open(path, "r", newline="") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialsFileError(f"Fail to read aws credentials file: {e}") from e
        logger.debug("Loaded credentials file %s", path)
        return cls(text, path=path)

    def sections(self) -> List[str]:
        return self._parser.sections()

    def has_section(self, name: str) -> bool:
        return self._parser.has_section(name)

    def section(self, name: str) -> Dict[str, str]:
        """Return the key/value pairs of a profile section (empty if absent)."""
        if not self._parser.has_section(name):
            return {}
        return dict(self._parser.items(name))

    def get_credentials(self, name: str) -> CandidateCredentials:
        return CandidateCredentials.from_section(self.section(name))

    def set_credentials(self, name: str, credentials: CandidateCredentials) -> None:
        """Stage the three credential keys of ``name`` for the next save."""
        if not self._parser.has_section(name):
            self._parser.add_section(name)
        staged = self._updates.setdefault(name, {})
        for key, value in credentials.as_profile().items():
            self._parser.set(name, key, value)
            staged[key] = value

    @property
    def dirty(self) -> bool:
        return bool(self._updates)

    def render(self) -> str:
        """Return the file contents with all staged updates applied."""
        if not self._updates:
            return self._text

        pending = self._updates
        nl = self._newline
        out: List[str] = []
        # Position after the last header/option line of each section
        insert_at: Dict[str, int] = {}
        written: Dict[str, set] = {name: set() for name in pending}
        current = None
        skip_indent = None
        # Blank and comment lines seen while a replaced value may still continue
        held: List[str] = []

        for line in self._text.splitlines(keepends=True):
            stripped = line.strip()

            if skip_indent is not None:
                # configparser keeps a value going across blank and comment
                # lines until a line that is not indented deeper than its key
                if not stripped or _is_comment(stripped):
                    held.append(line)
                    continue
                if _indent_width(line) > skip_indent:
                    # Continuation of the replaced value, blank lines included
                    out.extend(h for h in held if h.strip())
                    held = []
                    continue
                out.extend(held)
                held = []
                skip_indent = None

            header = _SECTION_RE.match(stripped)
            if header and not _is_comment(stripped):
                current = header.group("header")
                out.append(line)
                # Duplicate sections are merged; new keys go into the last one
                insert_at[current] = len(out)
                continue

            option = _OPTION_RE.match(line)
            if current in pending and option and stripped and not _is_comment(stripped):
                key = option.group("key").strip().lower()
                if key in pending[current]:
                    ending = nl if line.endswith(("\n", "\r")) else ""
                    out.append(f"{option.group('indent')}{key} = {pending[current][key]}{ending}")
                    written[current].add(key)
                    skip_indent = _indent_width(line)
                    insert_at[current] = len(out)
                    continue

            out.append(line)
            if current is not None and stripped and not _is_comment(stripped):
                insert_at[current] = len(out)

        out.extend(held)

        missing = {
            name: {key: value for key, value in values.items() if key not in written[name]}
            for name, values in pending.items()
        }

        # Keys missing from existing sections, inserted bottom-up so the
        # recorded positions stay valid
        existing = [name for name in missing if name in insert_at and missing[name]]
        for name in sorted(existing, key=lambda n: insert_at[n], reverse=True):
            index = insert_at[name]
            if index > 0 and not out[index - 1].endswith(("\n", "\r")):
                out[index - 1] += nl
            new_lines = [f"{key} = {value}{nl}" for key, value in missing[name].items()]
            out[index:index] = new_lines

        # Sections that do not exist yet go at the end of the file
        for name, values in missing.items():
            if name in insert_at or not values:
                continue
            if out and not out[-1].endswith(("\n", "\r")):
                out[-1] += nl
            if out and out[-1].strip():
                out.append(nl)
            out.append(f"[{name}]{nl}")
            out.extend(f"{key} = {values[key]}{nl}" for key in CREDENTIAL_KEYS if key in values)

        return "".join(out)

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """
        Write the file with all staged updates applied.

        The new contents are written to a temporary file next to the target
        and moved into place, so the credentials file is never left half
        written.

        Returns:
            Path: The path that was written
        """
        target = Path(path).expanduser() if path else self.path
        if target is None:
            raise CredentialsFileError("No path to save the credentials file to")

        text = self.render()
        try:
            mode = os.stat(target).st_mode & 0o777
        except FileNotFoundError:
            mode = 0o600

        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), prefix=".credentials.")
            try:
                with os.fdopen(fd, "w", newline="") as f:
                    f.write(text)
                os.chmod(tmp_path, mode)
                os.replace(tmp_path, target)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise CredentialsFileError(f"Fail to write aws credentials file: {e}") from e

        self._text = text
        self._updates = {}
        logger.debug("Saved credentials file %s", target)
        return target
