"""Tests for the remoteadmin command-line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from remoteadmin.cli import main, parse_cli_args
from remoteadmin.infra.audit_log import AuditStatus, AuditStore


def _config(tmp_path: Path, db_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"logging:\n  path: {tmp_path / 'service.log'}\n"
        f"database:\n  path: {db_path}\n"
        "command_executor:\n  enabled: true\n  commands:\n"
        "    - {name: greet, command: echo, args: [hi]}\n"
    )
    return path


def test_parse_serve_args() -> None:
    args = parse_cli_args(["--config", "c.yaml", "serve", "--host", "0.0.0.0", "--port", "9000"])
    assert args.command == "serve"
    assert args.config == "c.yaml"
    assert args.host == "0.0.0.0"
    assert args.port == 9000


@pytest.mark.parametrize("subcommand", ["serve", "audit"])
def test_config_accepted_after_subcommand(subcommand: str) -> None:
    args = parse_cli_args([subcommand, "--config", "c.yaml"])
    assert args.command == subcommand
    assert args.config == "c.yaml"


def test_config_before_subcommand_is_kept() -> None:
    args = parse_cli_args(["--config", "c.yaml", "audit", "--limit", "3"])
    assert args.config == "c.yaml"
    assert args.limit == 3


def test_config_defaults_to_none() -> None:
    assert parse_cli_args(["serve"]).config is None


def test_audit_with_config_after_subcommand(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db_path = tmp_path / "audit.sqlite"
    store = AuditStore(db_path)
    store.initialize()
    store.append("greet", AuditStatus.SUCCESS, "hi\n")

    assert main(["audit", "--config", str(_config(tmp_path, db_path))]) == 0
    [line] = capsys.readouterr().out.splitlines()
    assert json.loads(line)["command"] == "greet"


def test_subcommand_is_required() -> None:
    with pytest.raises(SystemExit):
        parse_cli_args([])


def test_missing_config_exits_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--config", str(tmp_path / "absent.yaml"), "audit"]) == 1
    assert "failed to load configuration" in capsys.readouterr().err


def test_audit_prints_recent_records(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = tmp_path / "audit.sqlite"
    store = AuditStore(db_path)
    store.initialize()
    store.append("greet", AuditStatus.SUCCESS, "hi\n")
    store.append("greet", AuditStatus.FAILURE, "")

    assert main(["--config", str(_config(tmp_path, db_path)), "audit", "--limit", "1"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["status"] == "failure"
    assert record["command"] == "greet"


def test_audit_on_uninitialized_store_fails(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = _config(tmp_path, tmp_path / "empty.sqlite")
    assert main(["--config", str(config_path), "audit"]) == 1
    assert "error:" in capsys.readouterr().err


def test_serve_initializes_store_then_runs_server(tmp_path: Path) -> None:
    db_path = tmp_path / "data" / "audit.sqlite"
    config_path = _config(tmp_path, db_path)

    with patch("remoteadmin.server.cli.run_server") as run_server:
        assert main(["--config", str(config_path), "serve", "--port", "9100"]) == 0

    run_server.assert_called_once()
    assert run_server.call_args.kwargs["port"] == 9100
    assert AuditStore(db_path).count() == 0


def test_serve_aborts_when_store_cannot_initialize(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    config_path = _config(tmp_path, blocker / "audit.sqlite")

    with patch("remoteadmin.server.cli.run_server") as run_server:
        assert main(["--config", str(config_path), "serve"]) == 1
    run_server.assert_not_called()
