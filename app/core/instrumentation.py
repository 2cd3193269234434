"""Lingua – Logging and Prometheus instrumentation."""

import time
import logging
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response, APIRouter
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

from config.settings import get_settings

router = APIRouter(tags=["monitoring"])

REQUEST_COUNT = Counter(
    "lingua_http_requests_total",
    "Total HTTP requests by method, endpoint and status",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "lingua_http_request_duration_seconds",
    "HTTP request latency by method and endpoint",
    ["method", "endpoint"],
)


@router.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def setup_logging() -> None:
    """Configure structlog for JSON output."""
    level = logging.getLevelName(get_settings().log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _route_template(request: Request) -> str:
    # Label by route template, not raw path, to keep project ids out of metric labels.
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def setup_instrumentation(app: FastAPI) -> None:
    """Configure logging and attach the metrics middleware."""
    setup_logging()

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            duration = time.time() - start_time
            endpoint = _route_template(request)
            REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=status).inc()
            REQUEST_LATENCY.labels(method=request.method, endpoint=endpoint).observe(duration)
            structlog.contextvars.clear_contextvars()

        return response
