"""FastAPI application setup and route registration."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from remoteadmin import __version__
from remoteadmin.config import AppConfig
from remoteadmin.infra.audit_log import AuditStore
from remoteadmin.infra.metrics import Metrics, instrument_app
from remoteadmin.security.path_resolver import SecurePathResolver
from remoteadmin.server.routes import Services, router
from remoteadmin.tools.command_tool import CommandGatekeeper

_log = logging.getLogger(__name__)


def build_services(config: AppConfig, audit_store: AuditStore | None = None) -> Services:
    """Construct the per-app collaborators for *config*."""
    store = audit_store or AuditStore(config.database.path)
    metrics = Metrics()
    gatekeeper = None
    if config.executor.enabled:
        gatekeeper = CommandGatekeeper(
            config.executor.commands,
            audit_store=store,
            limits=config.executor.limits,
            metrics=metrics,
        )
    resolver = None
    if config.file_server.enabled:
        resolver = SecurePathResolver(config.file_server.secure_dir)
    return Services(
        audit_store=store, gatekeeper=gatekeeper, resolver=resolver, metrics=metrics
    )


def prepare_runtime(config: AppConfig, services: Services) -> None:
    """Startup work: create the secure directory and the audit schema.

    Raises ``AuditStoreError`` when the audit store cannot be initialized.
    """
    if services.resolver is not None and not services.resolver.root.exists():
        _log.info("Creating secure directory %s", services.resolver.root)
        try:
            services.resolver.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            _log.error("Failed to create secure directory: %s", exc)
    services.audit_store.initialize()
    _log.info(
        "Audit store initialized at %s (executor=%s, file_server=%s)",
        services.audit_store.db_path,
        config.executor.enabled,
        config.file_server.enabled,
    )


def create_app(config: AppConfig, *, audit_store: AuditStore | None = None) -> FastAPI:
    """Build a FastAPI app bound to *config*."""
    services = build_services(config, audit_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan: startup and shutdown hooks."""
        _log.info("remoteadmin server starting")
        prepare_runtime(config, services)
        yield
        _log.info("remoteadmin server shutting down")

    app = FastAPI(
        title="remoteadmin",
        description="Run allow-listed commands and download files from a secure directory.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.config = config
    instrument_app(app, services.metrics)
    app.include_router(router)

    static_dir = config.server.static_dir
    if static_dir is not None:
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            _log.warning("Static directory %s does not exist; frontend disabled", static_dir)
    return app
