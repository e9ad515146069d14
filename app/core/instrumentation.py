"""Social Hub – Instrumentation.

structlog configuration plus the Prometheus metrics shared by the HTTP
middleware, the event router and the send gateway.
"""

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

from app.integrations.pii_filter import filter_log_record

router = APIRouter(tags=["monitoring"])

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

REQUEST_COUNT = Counter(
    "hub_http_requests_total",
    "Total HTTP requests by method, endpoint and status",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "hub_http_request_duration_seconds",
    "HTTP request latency by method and endpoint",
    ["method", "endpoint"],
)

WEBHOOK_EVENTS = Counter(
    "hub_webhook_events_total",
    "Webhook deliveries by platform and routing outcome",
    ["platform", "outcome"],
)

OUTBOUND_SENDS = Counter(
    "hub_outbound_sends_total",
    "Outbound platform / AI calls by target and status",
    ["target", "status"],
)


@router.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def setup_logging(level: str = "info") -> None:
    """Configure structlog with PII masking."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            filter_log_record,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LOG_LEVELS.get(level.lower(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_instrumentation(app: FastAPI, log_level: str = "info") -> None:
    """Configure logging and attach the request metrics middleware."""
    setup_logging(log_level)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        path = request.url.path

        try:
            response = await call_next(request)
            status = str(response.status_code)
        except Exception:
            status = "500"
            raise
        finally:
            duration = time.time() - start_time
            route = request.scope.get("route")
            path = getattr(route, "path", path)
            REQUEST_COUNT.labels(method=request.method, endpoint=path, status=status).inc()
            REQUEST_LATENCY.labels(method=request.method, endpoint=path).observe(duration)

        return response
