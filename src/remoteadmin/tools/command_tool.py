"""Allow-listed command execution with timeout, output capture and auditing.

Only ``CommandDefinition`` entries loaded from configuration can run. The
caller supplies a name and nothing else: program and arguments always come
from the allow-list, and no shell is involved.

Dependencies: infra.audit_log, infra.metrics
Wired in: server/routes.py → execute_command()
"""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import subprocess  # nosec B404: allow-listed argv only, shell=False
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum

from remoteadmin.errors import AuditStoreError, CommandNotFoundError
from remoteadmin.infra.audit_log import AuditStatus, AuditStore
from remoteadmin.infra.metrics import Metrics

_log = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024  # 1 MiB
_DEFAULT_MAX_CONCURRENT = 4
# Grace period for reading the pipe after the process group is killed.
_DRAIN_TIMEOUT_SECONDS = 1.0

_ENV_WHITELIST: frozenset[str] = frozenset(
    {"PATH", "HOME", "USER", "LANG", "LC_ALL", "TERM", "TZ"}
)

_TRUNCATION_MARKER = "\n[... truncated ...]\n"


@dataclass(frozen=True)
class CommandDefinition:
    """One allow-listed command. Never built from request data."""

    name: str
    program: str
    arguments: tuple[str, ...] = field(default_factory=tuple)

    def argv(self) -> list[str]:
        return [self.program, *self.arguments]


@dataclass(frozen=True)
class ExecutionLimits:
    """Bounds applied to every execution."""

    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    max_output_bytes: int = _DEFAULT_MAX_OUTPUT_BYTES
    max_concurrent: int = _DEFAULT_MAX_CONCURRENT

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")
        if self.max_output_bytes <= 0:
            raise ValueError("max_output_bytes must be > 0.")
        if self.max_concurrent <= 0:
            raise ValueError("max_concurrent must be > 0.")


class Outcome(Enum):
    """Terminal state of an execution attempt that was allowed to run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class InvocationResult:
    """Result of one execution attempt."""

    command: str
    output: str
    outcome: Outcome
    error: str | None = None
    exit_code: int | None = None
    truncated: bool = False
    duration_ms: int = 0
    audit_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def audit_status(self) -> AuditStatus:
        return AuditStatus.SUCCESS if self.ok else AuditStatus.FAILURE


def _safe_env() -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if k in _ENV_WHITELIST}


def _decode(raw: bytes | str | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return raw.decode("utf-8", errors="replace")


def _kill_group(proc: subprocess.Popen[bytes]) -> None:
    with contextlib.suppress(ProcessLookupError):
        os.killpg(proc.pid, signal.SIGKILL)


def _spawn(argv: list[str], timeout: float) -> tuple[bytes, int]:
    """Run *argv* with stderr folded into stdout.

    The child leads its own session so a timeout kills every process it
    started. ``TimeoutExpired.output`` carries whatever was read before
    the deadline. A descendant that left the session can hold the pipe
    open, so draining after the kill is bounded too.
    """
    with subprocess.Popen(  # nosec B603: argv comes from the allow-list only
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        env=_safe_env(),
        start_new_session=True,
    ) as proc:
        try:
            stdout, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            _kill_group(proc)
            try:
                partial, _ = proc.communicate(timeout=_DRAIN_TIMEOUT_SECONDS)
            except subprocess.TimeoutExpired as drain_exc:
                _log.warning("Output pipe of %r still open after kill", argv[0])
                partial = drain_exc.output or exc.output
            raise subprocess.TimeoutExpired(argv, timeout, output=partial) from exc
        return stdout, proc.returncode


def truncate_output(text: str, max_bytes: int) -> tuple[str, bool]:
    """Keep the head and tail of *text* when it exceeds *max_bytes*."""
    encoded = text.encode("utf-8", errors="replace")
    if len(encoded) <= max_bytes:
        return text, False
    half = max_bytes // 2
    first = encoded[:half].decode("utf-8", errors="replace")
    last = encoded[len(encoded) - half :].decode("utf-8", errors="replace")
    return first + _TRUNCATION_MARKER + last, True


class CommandGatekeeper:
    """Run allow-listed commands by name and audit each attempt."""

    def __init__(
        self,
        commands: Sequence[CommandDefinition],
        *,
        audit_store: AuditStore | None = None,
        limits: ExecutionLimits | None = None,
        metrics: Metrics | None = None,
    ) -> None:
        self._commands: tuple[CommandDefinition, ...] = tuple(commands)
        self._audit_store = audit_store
        self._metrics = metrics
        self._limits = limits or ExecutionLimits()
        self._slots = threading.BoundedSemaphore(self._limits.max_concurrent)

    @property
    def limits(self) -> ExecutionLimits:
        return self._limits

    def names(self) -> list[str]:
        """Allow-listed command names, in configured order."""
        return [command.name for command in self._commands]

    def lookup(self, name: str) -> CommandDefinition:
        """Exact, case-sensitive lookup. Raises ``CommandNotFoundError``."""
        for command in self._commands:
            if command.name == name:
                return command
        raise CommandNotFoundError(name)

    def execute(self, name: str) -> InvocationResult:
        """Run the command registered under *name*.

        Unknown names raise ``CommandNotFoundError`` before anything is
        spawned or audited. Every other attempt is audited once, and an
        audit failure never changes the returned result.
        """
        command = self.lookup(name)
        with self._slots:
            result = self._run(command)
        if self._metrics is not None:
            self._metrics.record_command(result.command, result.outcome.value)
        return self._audit(result)

    def _run(self, command: CommandDefinition) -> InvocationResult:
        timeout = self._limits.timeout_seconds
        started = time.monotonic()
        _log.info("Executing command %r", command.name)
        exit_code: int | None = None
        try:
            raw, exit_code = _spawn(command.argv(), timeout)
        except subprocess.TimeoutExpired as exc:
            raw_output = _decode(exc.output)
            outcome = Outcome.TIMED_OUT
            error: str | None = f"command {command.name!r} timed out after {timeout:g}s"
        except OSError as exc:
            raw_output = ""
            outcome = Outcome.FAILED
            error = f"command {command.name!r} failed to start: {exc}"
        else:
            raw_output = _decode(raw)
            if exit_code == 0:
                outcome = Outcome.SUCCEEDED
                error = None
            else:
                outcome = Outcome.FAILED
                error = f"command {command.name!r} failed: exit status {exit_code}"

        output, truncated = truncate_output(raw_output, self._limits.max_output_bytes)
        duration_ms = int((time.monotonic() - started) * 1000)
        if outcome is Outcome.SUCCEEDED:
            _log.info("Command %r succeeded in %dms", command.name, duration_ms)
        else:
            _log.warning("Command %r %s: %s", command.name, outcome.value, error)
        return InvocationResult(
            command=command.name,
            output=output,
            outcome=outcome,
            error=error,
            exit_code=exit_code,
            truncated=truncated,
            duration_ms=duration_ms,
        )

    def _audit(self, result: InvocationResult) -> InvocationResult:
        if self._audit_store is None:
            return result
        try:
            audit_id = self._audit_store.append(result.command, result.audit_status, result.output)
        except AuditStoreError:
            _log.exception("Failed to record action to audit store for %r", result.command)
            return result
        return replace(result, audit_id=audit_id)
