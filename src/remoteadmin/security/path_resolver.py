"""Secure root path resolution for file listing and download."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from remoteadmin.errors import AccessDeniedError, InvalidNameError

_FORBIDDEN_TOKENS: tuple[str, ...] = ("..", "/", "\\", "\x00")


def check_name(requested_name: str) -> None:
    """Reject names that are not a single plain path segment.

    Purely syntactic; the filesystem is not consulted.
    """
    if not requested_name:
        raise InvalidNameError("Invalid filename: empty")
    if any(token in requested_name for token in _FORBIDDEN_TOKENS):
        raise InvalidNameError(f"Invalid filename: {requested_name!r}")


@dataclass(frozen=True)
class SecurePathResolver:
    """Resolve caller-supplied file names against one secure root."""

    root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", self.root.expanduser().resolve())

    def resolve(self, requested_name: str) -> Path:
        """Return the canonical path for *requested_name* inside the root.

        The name check runs first. The containment check is done on the
        resolved forms, so symlinks pointing outside the root are refused.
        """
        check_name(requested_name)
        resolved = (self.root / requested_name).resolve()
        if not resolved.is_relative_to(self.root):
            raise AccessDeniedError(f"Access denied: {requested_name!r}")
        return resolved

    def ensure_file(self, requested_name: str) -> Path:
        """Resolve *requested_name* and require an existing regular file."""
        resolved = self.resolve(requested_name)
        if not resolved.is_file():
            raise FileNotFoundError(f"File not found: {requested_name}")
        return resolved

    def list_files(self) -> list[str]:
        """Names of the non-directory entries directly under the root."""
        return sorted(entry.name for entry in self.root.iterdir() if not entry.is_dir())
