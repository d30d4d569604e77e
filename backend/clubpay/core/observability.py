"""
Prometheus instrumentation for the Club Pay API.

This module sets up:
- Prometheus metrics endpoint
- Request/exception counters
- Compensation engine counters (data-quality flags, snapshot short-circuits)
"""

from __future__ import annotations

import logging
import re
import time

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Prometheus metrics
http_requests_total = Counter(
    "http_server_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"]
)

http_request_duration_seconds = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

http_exceptions_total = Counter(
    "http_server_exceptions_total",
    "Total unhandled exceptions",
    ["method", "path", "exception_type"]
)

metric_parse_failures_total = Counter(
    "clubpay_metric_parse_failures_total",
    "Non-empty metric values that could not be parsed as numbers",
    ["source"]
)

snapshot_short_circuits_total = Counter(
    "clubpay_snapshot_short_circuits_total",
    "Shift evaluations answered from a frozen salary snapshot"
)

summary_duration_seconds = Histogram(
    "clubpay_summary_duration_seconds",
    "Time spent building one club period summary",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for all requests."""

    async def dispatch(self, request: Request, call_next) -> Response:
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            http_requests_total.labels(
                method=method,
                path=path,
                status=response.status_code
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                path=path
            ).observe(duration)

            return response
        except Exception as e:
            duration = time.perf_counter() - start_time

            http_exceptions_total.labels(
                method=method,
                path=path,
                exception_type=type(e).__name__
            ).inc()

            http_requests_total.labels(
                method=method,
                path=path,
                status=500
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                path=path
            ).observe(duration)

            raise

    def _normalize_path(self, path: str) -> str:
        """Replace numeric IDs in path with placeholder to reduce cardinality."""
        normalized = re.sub(r'/\d+', '/{id}', path)
        parts = normalized.split('/')[:7]
        return '/'.join(parts)


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint handler."""
    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
