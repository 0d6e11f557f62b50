"""Prometheus metrics for HTTP traffic and reservation outcomes."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS_TOTAL = Counter(
    "storefront_booking_http_requests_total",
    "Total number of HTTP requests handled by the API.",
    ["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "storefront_booking_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

RESERVATION_OUTCOMES_TOTAL = Counter(
    "storefront_booking_reservation_outcomes_total",
    "Booking attempts by module kind and final attempt state.",
    ["module_kind", "outcome"],
)

RESERVATION_COMMIT_DURATION_SECONDS = Histogram(
    "storefront_booking_reservation_commit_duration_seconds",
    "Time spent inside the atomic reservation commit.",
    ["module_kind"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)


def _request_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)
    return request.url.path


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Track request count and latency for each endpoint."""
    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        path_label = _request_path_label(request)
        method_label = request.method.upper()

        HTTP_REQUESTS_TOTAL.labels(
            method=method_label,
            path=path_label,
            status_code=str(status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=method_label,
            path=path_label,
        ).observe(perf_counter() - started_at)


def record_reservation_outcome(module_kind: str, outcome: str) -> None:
    """Count one finished booking attempt."""
    RESERVATION_OUTCOMES_TOTAL.labels(module_kind=module_kind, outcome=outcome).inc()


def observe_commit_duration(module_kind: str, seconds: float) -> None:
    """Record how long the atomic commit took."""
    RESERVATION_COMMIT_DURATION_SECONDS.labels(module_kind=module_kind).observe(seconds)


def build_metrics_response() -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
