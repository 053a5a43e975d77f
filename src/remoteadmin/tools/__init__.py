"""Allow-listed command execution.

Public API: CommandDefinition, CommandGatekeeper, ExecutionLimits,
    InvocationResult, Outcome
"""

from remoteadmin.tools.command_tool import (
    CommandDefinition,
    CommandGatekeeper,
    ExecutionLimits,
    InvocationResult,
    Outcome,
)

__all__ = [
    "CommandDefinition",
    "CommandGatekeeper",
    "ExecutionLimits",
    "InvocationResult",
    "Outcome",
]
