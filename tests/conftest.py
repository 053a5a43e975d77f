"""Shared test fixtures for remoteadmin."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from remoteadmin.config import (
    AppConfig,
    DatabaseConfig,
    ExecutorConfig,
    FileServerConfig,
    LoggingConfig,
)
from remoteadmin.infra.audit_log import AuditStore
from remoteadmin.infra.log_setup import ROOT_LOGGER_NAME
from remoteadmin.server.app import create_app
from remoteadmin.tools.command_tool import CommandDefinition, ExecutionLimits

_TEST_TIMEOUT_SECONDS = 1.0

_TEST_COMMANDS: tuple[CommandDefinition, ...] = (
    CommandDefinition(name="greet", program="echo", arguments=("hello",)),
    CommandDefinition(
        name="fail",
        program="sh",
        arguments=("-c", "echo partial; echo oops 1>&2; exit 3"),
    ),
    CommandDefinition(name="slow", program="sh", arguments=("-c", "echo started; sleep 10")),
    CommandDefinition(name="missing", program="/nonexistent/remoteadmin-test-binary"),
)


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Drop handlers installed by ``configure_logging`` between tests."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


@pytest.fixture()
def commands() -> tuple[CommandDefinition, ...]:
    """Allow-list covering success, failure, timeout and spawn failure."""
    return _TEST_COMMANDS


@pytest.fixture()
def audit_store(tmp_path: Path) -> AuditStore:
    """Initialized AuditStore backed by a temporary SQLite database."""
    store = AuditStore(tmp_path / "audit.sqlite")
    store.initialize()
    return store


@pytest.fixture()
def secure_dir(tmp_path: Path) -> Path:
    """Empty secure root directory."""
    path = tmp_path / "secure"
    path.mkdir()
    return path


@pytest.fixture()
def limits() -> ExecutionLimits:
    return ExecutionLimits(timeout_seconds=_TEST_TIMEOUT_SECONDS)


@pytest.fixture()
def app_config(
    tmp_path: Path,
    secure_dir: Path,
    commands: tuple[CommandDefinition, ...],
    limits: ExecutionLimits,
) -> AppConfig:
    """Config with both the executor and the file server enabled."""
    return AppConfig(
        logging=LoggingConfig(level="debug"),
        database=DatabaseConfig(path=tmp_path / "audit.sqlite"),
        file_server=FileServerConfig(enabled=True, secure_dir=secure_dir),
        executor=ExecutorConfig(enabled=True, commands=commands, limits=limits),
    )


@pytest.fixture()
def client(app_config: AppConfig) -> Iterator[TestClient]:
    """FastAPI test client with the lifespan (startup) hooks run."""
    with TestClient(create_app(app_config)) as test_client:
        yield test_client
