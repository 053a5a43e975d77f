"""Command-line entrypoint: ``remoteadmin serve`` and ``remoteadmin audit``."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from remoteadmin import __version__
from remoteadmin.config import AppConfig, load_config, resolve_config_path
from remoteadmin.errors import AuditStoreError, ConfigError
from remoteadmin.infra.audit_log import AuditStore
from remoteadmin.infra.log_setup import configure_logging

_log = logging.getLogger(__name__)

_DEFAULT_AUDIT_LIMIT = 20
_CONFIG_HELP = "Path to config.yaml (default: $REMOTEADMIN_CONFIG or ./config.yaml)"


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="remoteadmin",
        description="Remote administration server for allow-listed commands and files",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--config", default=None, help=_CONFIG_HELP)
    # Accepted after the subcommand too; SUPPRESS keeps an earlier value.
    config_parent = argparse.ArgumentParser(add_help=False)
    config_parent.add_argument("--config", default=argparse.SUPPRESS, help=_CONFIG_HELP)
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", parents=[config_parent], help="Run the HTTP server")
    serve.add_argument("--host", default=None, help="Bind host (overrides config)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")

    audit = subparsers.add_parser(
        "audit", parents=[config_parent], help="Print recent audit records as JSON lines"
    )
    audit.add_argument(
        "--limit",
        type=int,
        default=_DEFAULT_AUDIT_LIMIT,
        help=f"Number of records to show (default: {_DEFAULT_AUDIT_LIMIT})",
    )
    return parser.parse_args(argv)


def _serve(config: AppConfig, args: argparse.Namespace) -> int:
    from remoteadmin.server.cli import run_server

    try:
        AuditStore(config.database.path).initialize()
    except AuditStoreError as exc:
        _log.error("Failed to initialize database schema: %s", exc)
        return 1
    _log.info("Database initialized at %s", config.database.path)
    run_server(config, host=args.host, port=args.port)
    return 0


def _audit(config: AppConfig, args: argparse.Namespace) -> int:
    try:
        records = AuditStore(config.database.path).recent(limit=args.limit)
    except AuditStoreError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for record in records:
        print(json.dumps(record.to_dict()))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_cli_args(argv if argv is not None else sys.argv[1:])
    try:
        config = load_config(resolve_config_path(args.config))
    except ConfigError as exc:
        print(f"error: failed to load configuration: {exc}", file=sys.stderr)
        return 1
    configure_logging(config.logging)

    if args.command == "serve":
        return _serve(config, args)
    return _audit(config, args)


if __name__ == "__main__":
    raise SystemExit(main())
