"""Route handlers for the FastAPI server.

Handlers are plain ``def`` functions, so FastAPI runs each request on its
worker thread pool; a running command blocks only its own worker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import cast

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, JSONResponse

from remoteadmin.errors import AccessDeniedError, CommandNotFoundError, InvalidNameError
from remoteadmin.infra.audit_log import AuditStore
from remoteadmin.infra.metrics import Metrics
from remoteadmin.security.path_resolver import SecurePathResolver
from remoteadmin.server.models import (
    CommandInfo,
    CommandListResponse,
    ExecuteCommandRequest,
    ExecuteCommandResponse,
    FileListResponse,
    HealthResponse,
)
from remoteadmin.tools.command_tool import CommandGatekeeper

_log = logging.getLogger(__name__)

router = APIRouter()


@dataclass(frozen=True)
class Services:
    """Collaborators shared by all handlers of one app instance.

    ``gatekeeper`` and ``resolver`` are ``None`` when the matching feature
    is disabled in configuration. ``metrics`` is private to the app instance.
    """

    audit_store: AuditStore
    gatekeeper: CommandGatekeeper | None = None
    resolver: SecurePathResolver | None = None
    metrics: Metrics = field(default_factory=Metrics)


def get_services(request: Request) -> Services:
    return cast(Services, request.app.state.services)


def _require_gatekeeper(services: Services = Depends(get_services)) -> CommandGatekeeper:
    if services.gatekeeper is None:
        raise HTTPException(status_code=404, detail="Command executor is disabled")
    return services.gatekeeper


def _require_resolver(services: Services = Depends(get_services)) -> SecurePathResolver:
    if services.resolver is None:
        raise HTTPException(status_code=404, detail="File server is disabled")
    return services.resolver


# --- Health ---


@router.get("/api/health", response_model=HealthResponse, tags=["health"])
def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse()


# --- Commands ---


@router.get("/api/v1/commands", response_model=CommandListResponse, tags=["commands"])
def list_commands(
    gatekeeper: CommandGatekeeper = Depends(_require_gatekeeper),
) -> CommandListResponse:
    """List the names of the commands that may be executed."""
    return CommandListResponse(commands=[CommandInfo(name=name) for name in gatekeeper.names()])


@router.post(
    "/api/v1/execute",
    response_model=ExecuteCommandResponse,
    response_model_exclude_none=True,
    tags=["commands"],
    responses={
        404: {"description": "Command not found or executor disabled"},
        500: {"model": ExecuteCommandResponse, "description": "Command failed or timed out"},
    },
)
def execute_command(
    body: ExecuteCommandRequest,
    gatekeeper: CommandGatekeeper = Depends(_require_gatekeeper),
) -> ExecuteCommandResponse | JSONResponse:
    """Execute a command predefined in the server configuration."""
    try:
        result = gatekeeper.execute(body.name)
    except CommandNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Command not found") from exc

    response = ExecuteCommandResponse(output=result.output, error=result.error)
    if not result.ok:
        return JSONResponse(
            content=response.model_dump(exclude_none=True),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return response


# --- Files ---


@router.get("/api/v1/files", response_model=FileListResponse, tags=["files"])
def list_files(resolver: SecurePathResolver = Depends(_require_resolver)) -> FileListResponse:
    """List files available for download from the secure directory."""
    try:
        names = resolver.list_files()
    except OSError as exc:
        _log.error("Could not list secure directory %s: %s", resolver.root, exc)
        raise HTTPException(status_code=500, detail="Could not list files") from exc
    return FileListResponse(files=names)


@router.get(
    "/api/v1/files/{filename:path}",
    response_class=FileResponse,
    tags=["files"],
    responses={
        400: {"description": "Invalid filename"},
        403: {"description": "Access denied"},
        404: {"description": "File not found or file server disabled"},
    },
)
def download_file(
    filename: str,
    resolver: SecurePathResolver = Depends(_require_resolver),
) -> FileResponse:
    """Download one file from the secure directory."""
    try:
        path = resolver.ensure_file(filename)
    except InvalidNameError as exc:
        raise HTTPException(status_code=400, detail="Invalid filename") from exc
    except AccessDeniedError as exc:
        _log.warning("Rejected path escape attempt: %r", filename)
        raise HTTPException(status_code=403, detail="Access denied") from exc
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    except (OSError, RuntimeError) as exc:
        _log.error("Could not resolve %r: %s", filename, exc)
        raise HTTPException(status_code=500, detail="Internal server error") from exc
    return FileResponse(path, filename=path.name)
