from __future__ import annotations

"""
Prometheus metrics setup and /metrics exporter for Studio Compiler.

Features
--------
- Per-app registry (tests can build many apps in one process).
- Low-overhead ASGI middleware that records:
    - http_requests_total{method,path,status}
    - http_request_duration_seconds histogram
    - http_inprogress_requests gauge
- Engine/compiler counters:
    - compile_requests_total{mode,outcome}
    - dependency_cycles_total
- FastAPI router mounted at /metrics (configurable).

Usage
-----
    from fastapi import FastAPI
    from studio_compiler.metrics import setup_metrics

    app = FastAPI()
    setup_metrics(app, service_name="studio-compiler", service_version="0.1.0")
"""

import os
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI
from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, Info, ProcessCollector,
                               generate_latest)
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

# ------------------------------ Registry -------------------------------------


class Metrics:
    """
    Holder for registry and metric objects. Exposed via app.state.metrics.
    """

    def __init__(self, service_name: str, service_version: Optional[str] = None) -> None:
        self.registry = CollectorRegistry()
        ProcessCollector(registry=self.registry)

        self.http_inprogress = Gauge(
            "http_inprogress_requests",
            "In-progress HTTP requests",
            ["method"],
            registry=self.registry,
        )
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "path", "status"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )

        self.compile_requests_total = Counter(
            "compile_requests_total",
            "Compilation requests forwarded to the compiler service",
            ["mode", "outcome"],
            registry=self.registry,
        )
        self.dependency_cycles_total = Counter(
            "dependency_cycles_total",
            "Dependency cycles found while assembling compilation units",
            registry=self.registry,
        )

        self.service_info = Info("service", "Service metadata", registry=self.registry)
        payload = {"name": service_name}
        if service_version:
            payload["version"] = service_version
        self.service_info.info(payload)

    def render_latest(self) -> bytes:
        return generate_latest(self.registry)


# ------------------------------ Middleware -----------------------------------


def _extract_path_template(scope: Scope) -> str:
    """
    Low-cardinality path label: the matched route template when routing has
    run, else the raw path.
    """
    route = scope.get("route")
    val = getattr(route, "path_format", None) or getattr(route, "path", None)
    if isinstance(val, str) and val:
        return val
    return scope.get("path") or "unknown"


class PrometheusMiddleware:
    """
    Minimal ASGI middleware to record HTTP metrics.
    """

    def __init__(self, app: ASGIApp, metrics: Metrics):
        self.app = app
        self.metrics = metrics

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        start = time.perf_counter()
        status_code = 500  # default in case of early error

        self.metrics.http_inprogress.labels(method).inc()

        async def send_wrapped(message: Dict[str, Any]) -> None:
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
            await send(message)

        try:
            await self.app(scope, receive, send_wrapped)
        finally:
            duration = time.perf_counter() - start
            # routing fills scope["route"] in place, so read it afterwards
            labels = (method, _extract_path_template(scope), str(status_code))
            self.metrics.http_requests_total.labels(*labels).inc()
            self.metrics.http_request_duration_seconds.labels(*labels).observe(duration)
            self.metrics.http_inprogress.labels(method).dec()


# ------------------------------ Router ---------------------------------------


def create_metrics_router(metrics: Metrics, path: str = "/metrics") -> APIRouter:
    router = APIRouter()

    @router.get(path, include_in_schema=False)
    async def metrics_endpoint() -> Response:
        return Response(content=metrics.render_latest(), media_type=CONTENT_TYPE_LATEST)

    return router


# ------------------------------ Setup helper ---------------------------------


def setup_metrics(
    app: FastAPI,
    *,
    service_name: str = "studio-compiler",
    service_version: Optional[str] = None,
    path: Optional[str] = None,
) -> Metrics:
    """
    Wire Prometheus metrics into a FastAPI app:
    - create registry & metric objects
    - add ASGI middleware for HTTP metrics
    - mount /metrics (or custom path)

    Returns the `Metrics` instance and stores it in `app.state.metrics`.
    """
    metrics = Metrics(service_name=service_name, service_version=service_version)
    app.add_middleware(PrometheusMiddleware, metrics=metrics)

    export_path = path or os.getenv("METRICS_PATH") or "/metrics"
    app.include_router(create_metrics_router(metrics, export_path))

    app.state.metrics = metrics
    return metrics


__all__ = [
    "Metrics",
    "PrometheusMiddleware",
    "create_metrics_router",
    "setup_metrics",
]
