"""Exception types shared across the gatekeeper, path resolver and audit store."""

from __future__ import annotations


class RemoteAdminError(Exception):
    """Base class for all remoteadmin errors."""


class RejectedError(RemoteAdminError):
    """Caller input was rejected before any work was attempted."""


class CommandNotFoundError(RejectedError, LookupError):
    """Requested command name is not in the allow-list."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Command not found: {name!r}")
        self.name = name


class InvalidNameError(RejectedError, ValueError):
    """Requested file name is syntactically invalid."""


class AccessDeniedError(RejectedError, PermissionError):
    """Requested file name resolves outside the secure root."""


class AuditStoreError(RemoteAdminError):
    """The audit store could not be initialized or written."""


class ConfigError(RemoteAdminError, ValueError):
    """Configuration file is missing or invalid."""
