"""Server entry point for ``remoteadmin serve``."""

from __future__ import annotations

from remoteadmin.config import AppConfig

_UVICORN_LEVEL_ALIASES = {"warn": "warning"}


def run_server(config: AppConfig, host: str | None = None, port: int | None = None) -> None:
    """Start the FastAPI server with uvicorn."""
    import uvicorn

    from remoteadmin.server.app import create_app

    level = config.logging.level.strip().lower()
    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=_UVICORN_LEVEL_ALIASES.get(level, level),
        access_log=False,
    )
