"""Remote administration service: allow-listed commands, secure file serving, audit trail."""

__version__ = "0.1.0"
