"""Prometheus metrics for HTTP traffic and command executions.

Each app instance owns one ``Metrics`` object with its own
``CollectorRegistry``; nothing is registered on the process-wide default
registry.

Dependencies: prometheus_client
Wired in: server/app.py → create_app(), tools/command_tool.py
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

UNMATCHED_PATH = "unmatched"


class Metrics:
    """Request and command-execution collectors bound to one registry."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.http_requests_total = Counter(
            "remoteadmin_http_requests_total",
            "Total number of HTTP requests.",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "remoteadmin_http_request_duration_seconds",
            "Histogram of request latencies.",
            ["method", "path"],
            registry=self.registry,
        )
        self.command_executions_total = Counter(
            "remoteadmin_command_executions_total",
            "Command execution attempts by outcome.",
            ["command", "outcome"],
            registry=self.registry,
        )

    def record_command(self, command: str, outcome: str) -> None:
        self.command_executions_total.labels(command=command, outcome=outcome).inc()

    def record_request(self, method: str, path: str, status: int, seconds: float) -> None:
        self.http_requests_total.labels(method=method, path=path, status=str(status)).inc()
        self.http_request_duration.labels(method=method, path=path).observe(seconds)

    def render(self) -> bytes:
        return generate_latest(self.registry)


def _route_template(request: Request) -> str:
    """Path template of the matched route, so ``/files/{filename}`` is one series.

    Routing stores the matched route in the scope; read it after the
    response is produced. Requests no route claimed share one label.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return UNMATCHED_PATH


def instrument_app(app: FastAPI, metrics: Metrics) -> None:
    """Add the request-metrics middleware and the ``/metrics`` endpoint."""

    @app.middleware("http")
    async def _observe(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        metrics.record_request(
            request.method,
            _route_template(request),
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    @app.get("/metrics", include_in_schema=False)
    def render_metrics() -> Response:
        return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)
