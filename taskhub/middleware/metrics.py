"""Prometheus metrics middleware."""
import time

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response

# Metrics
http_requests_total = Counter(
    "taskhub_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

http_request_duration_seconds = Histogram(
    "taskhub_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

http_errors_total = Counter(
    "taskhub_http_errors_total",
    "Total unhandled HTTP errors",
    ["method", "endpoint", "error_type"],
)

websocket_connections = Gauge(
    "taskhub_websocket_connections",
    "Authenticated WebSocket connections in this process",
)

realtime_events_total = Counter(
    "taskhub_realtime_events_total",
    "Realtime task events published",
    ["event_type"],
)


def _endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def setup_metrics(app: FastAPI) -> None:
    """Register the request-metrics middleware and the /metrics endpoint."""

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            http_errors_total.labels(request.method, _endpoint_label(request), type(e).__name__).inc()
            raise
        endpoint = _endpoint_label(request)
        http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started)
        http_requests_total.labels(request.method, endpoint, str(response.status_code)).inc()
        return response

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
