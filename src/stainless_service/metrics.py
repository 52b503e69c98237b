"""Prometheus metrics for tool invocations, service operations and HTTP traffic."""

from __future__ import annotations

import time
from typing import Any

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

TOOL_INVOCATIONS = Counter(
    "stainless_tool_invocations_total",
    "External tool invocations by outcome",
    ["tool", "outcome"],
)
TOOL_DURATION = Histogram(
    "stainless_tool_duration_seconds",
    "External tool wall-clock duration in seconds",
    ["tool"],
)
OPERATIONS = Counter(
    "stainless_operations_total",
    "Service operations by outcome",
    ["operation", "status"],
)
OPERATION_DURATION = Histogram(
    "stainless_operation_duration_seconds",
    "Service operation duration in seconds",
    ["operation"],
)
HTTP_REQUESTS = Counter(
    "stainless_http_requests_total",
    "HTTP requests by endpoint and status",
    ["method", "endpoint", "status_code"],
)
HTTP_REQUEST_DURATION = Histogram(
    "stainless_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to track HTTP request metrics.
    Records request count, duration, and status codes per endpoint.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        endpoint = request.url.path
        method = request.method
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=500).inc()
            raise
        else:
            HTTP_REQUESTS.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
            return response
        finally:
            duration = time.time() - start_time
            HTTP_REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)
