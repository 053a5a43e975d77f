"""Security primitives for file access under the secure root."""

from remoteadmin.security.path_resolver import SecurePathResolver, check_name

__all__ = [
    "SecurePathResolver",
    "check_name",
]
