"""Application configuration loading and YAML parsing.

The whole service is described by one frozen ``AppConfig`` built at startup
and passed into the app factory. Nothing reads configuration lazily from
module globals.

Dependencies: yaml, dotenv
Wired in: cli.py → main(), server/app.py → create_app()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

import yaml
from dotenv import load_dotenv

from remoteadmin.errors import ConfigError
from remoteadmin.infra.log_setup import parse_level
from remoteadmin.tools.command_tool import CommandDefinition, ExecutionLimits

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    static_dir: Path | None = None
    """Optional directory served at ``/`` as a static frontend."""


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "info"
    path: Path | None = None
    """Append JSON log lines here; stdout when unset."""


@dataclass(frozen=True)
class DatabaseConfig:
    path: Path = Path("remoteadmin.sqlite")


@dataclass(frozen=True)
class FileServerConfig:
    enabled: bool = False
    secure_dir: Path = Path("secure")


@dataclass(frozen=True)
class ExecutorConfig:
    enabled: bool = False
    commands: tuple[CommandDefinition, ...] = field(default_factory=tuple)
    limits: ExecutionLimits = field(default_factory=ExecutionLimits)


@dataclass(frozen=True)
class AppConfig:
    """Immutable description of one service instance."""

    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    file_server: FileServerConfig = field(default_factory=FileServerConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)


def _section(data: dict[str, object], key: str) -> dict[str, object]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Section '{key}' must be a mapping.")
    return cast(dict[str, object], raw)


def _optional_path(raw: object) -> Path | None:
    if raw is None or raw == "":
        return None
    return Path(str(raw))


def _as_int(raw: object, label: str) -> int:
    try:
        return int(str(raw))
    except ValueError:
        raise ConfigError(f"'{label}' must be an integer, got {raw!r}.") from None


def _as_float(raw: object, label: str) -> float:
    try:
        return float(str(raw))
    except ValueError:
        raise ConfigError(f"'{label}' must be a number, got {raw!r}.") from None


def _as_bool(raw: object, label: str) -> bool:
    if not isinstance(raw, bool):
        raise ConfigError(f"'{label}' must be true or false, got {raw!r}.")
    return raw


def _parse_command(index: int, raw: object) -> CommandDefinition:
    if not isinstance(raw, dict):
        raise ConfigError(f"Command #{index} must be a mapping.")
    entry = cast(dict[str, object], raw)
    name = entry.get("name")
    program = entry.get("command")
    if not isinstance(name, str) or not name:
        raise ConfigError(f"Command #{index}: 'name' is required.")
    if not isinstance(program, str) or not program:
        raise ConfigError(f"Command '{name}': 'command' is required.")
    raw_args = entry.get("args") or []
    if not isinstance(raw_args, list):
        raise ConfigError(f"Command '{name}': 'args' must be a list.")
    arguments = tuple(str(arg) for arg in cast(list[object], raw_args))
    return CommandDefinition(name=name, program=program, arguments=arguments)


def _parse_executor(raw: dict[str, object]) -> ExecutorConfig:
    raw_commands = raw.get("commands") or []
    if not isinstance(raw_commands, list):
        raise ConfigError("'command_executor.commands' must be a list.")
    commands = tuple(
        _parse_command(i, entry) for i, entry in enumerate(cast(list[object], raw_commands))
    )
    seen: set[str] = set()
    for command in commands:
        if command.name in seen:
            raise ConfigError(f"Duplicate command name '{command.name}'.")
        seen.add(command.name)

    defaults = ExecutionLimits()
    timeout_seconds = _as_float(
        raw.get("timeout_seconds", defaults.timeout_seconds), "command_executor.timeout_seconds"
    )
    max_output_bytes = _as_int(
        raw.get("max_output_bytes", defaults.max_output_bytes), "command_executor.max_output_bytes"
    )
    max_concurrent = _as_int(
        raw.get("max_concurrent", defaults.max_concurrent), "command_executor.max_concurrent"
    )
    try:
        limits = ExecutionLimits(
            timeout_seconds=timeout_seconds,
            max_output_bytes=max_output_bytes,
            max_concurrent=max_concurrent,
        )
    except ValueError as exc:
        raise ConfigError(f"command_executor: {exc}") from exc

    enabled = _as_bool(raw.get("enabled", False), "command_executor.enabled")
    return ExecutorConfig(enabled=enabled, commands=commands, limits=limits)


def parse_config(data: dict[str, object]) -> AppConfig:
    """Build an ``AppConfig`` from an already-parsed YAML mapping."""
    server_raw = _section(data, "server")
    logging_raw = _section(data, "logging")
    database_raw = _section(data, "database")
    files_raw = _section(data, "file_server")
    executor_raw = _section(data, "command_executor")

    server = ServerConfig(
        host=str(os.getenv("REMOTEADMIN_HOST") or server_raw.get("host", ServerConfig.host)),
        port=_as_int(
            os.getenv("REMOTEADMIN_PORT") or server_raw.get("port", ServerConfig.port),
            "server.port",
        ),
        static_dir=_optional_path(server_raw.get("static_dir")),
    )

    level = str(logging_raw.get("level", LoggingConfig.level))
    try:
        parse_level(level)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    log_config = LoggingConfig(level=level, path=_optional_path(logging_raw.get("path")))

    db_path = _optional_path(database_raw.get("path")) or DatabaseConfig.path
    file_server = FileServerConfig(
        enabled=_as_bool(files_raw.get("enabled", False), "file_server.enabled"),
        secure_dir=_optional_path(files_raw.get("secure_dir")) or FileServerConfig.secure_dir,
    )

    return AppConfig(
        server=server,
        logging=log_config,
        database=DatabaseConfig(path=db_path),
        file_server=file_server,
        executor=_parse_executor(executor_raw),
    )


def resolve_config_path(explicit: str | None = None) -> Path:
    """Pick the config file: explicit argument, ``$REMOTEADMIN_CONFIG``, then default."""
    if explicit:
        return Path(explicit)
    env_path = os.getenv("REMOTEADMIN_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path) -> AppConfig:
    """Load configuration from a YAML file. Raises ``ConfigError``."""
    load_dotenv()
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {config_path} must be a mapping.")
    return parse_config(cast(dict[str, object], data))
