"""Pydantic models for server API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from remoteadmin import __version__


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: str = "ok"
    version: str = __version__


class CommandInfo(BaseModel):
    """Public view of an allow-listed command. Program and arguments stay private."""

    name: str


class CommandListResponse(BaseModel):
    """GET /api/v1/commands response."""

    commands: list[CommandInfo] = Field(default_factory=list)


class ExecuteCommandRequest(BaseModel):
    """POST /api/v1/execute request body."""

    name: str


class ExecuteCommandResponse(BaseModel):
    """POST /api/v1/execute response body."""

    output: str
    error: str | None = None


class FileListResponse(BaseModel):
    """GET /api/v1/files response."""

    files: list[str] = Field(default_factory=list)
