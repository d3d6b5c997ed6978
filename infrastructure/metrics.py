"""Prometheus metrics for the music catalog API.

Metrics:
    mc_http_requests_total             Counter by method, route template and status
    mc_http_request_latency_seconds    Histogram by route template
    mc_statistics_latency_seconds      Histogram of /api/music/statistics aggregation time
    mc_rate_limited_total              Requests rejected by the rate limiter
    mc_auth_failures_total             Rejected credentials/tokens by reason

Usage::

    from infrastructure.metrics import LatencyTimer, record_request

    with LatencyTimer() as t:
        response = await call_next(request)
    record_request(method="GET", route="/api/music", status=200, latency_seconds=t.elapsed)
"""

from __future__ import annotations

import time

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_REGISTRY = CollectorRegistry()

http_requests_total = Counter(
    "mc_http_requests_total",
    "HTTP requests by method, route and status",
    ["method", "route", "status"],
    registry=_REGISTRY,
)

http_request_latency_seconds = Histogram(
    "mc_http_request_latency_seconds",
    "HTTP request latency in seconds",
    ["route"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=_REGISTRY,
)

statistics_latency_seconds = Histogram(
    "mc_statistics_latency_seconds",
    "Time spent aggregating catalog statistics",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=_REGISTRY,
)

rate_limited_total = Counter(
    "mc_rate_limited_total",
    "Requests rejected by rate limiter",
    registry=_REGISTRY,
)

auth_failures_total = Counter(
    "mc_auth_failures_total",
    "Rejected logins and bearer tokens",
    ["reason"],
    registry=_REGISTRY,
)


def record_request(*, method: str, route: str, status: int, latency_seconds: float) -> None:
    """Record a completed HTTP request.

    Args:
        method: HTTP method.
        route: Route template (``/api/music/{music_id}``), never the raw path,
            so label cardinality stays bounded.
        status: Response status code.
        latency_seconds: Wall-clock handling time.
    """
    http_requests_total.labels(method=method, route=route, status=str(status)).inc()
    http_request_latency_seconds.labels(route=route).observe(latency_seconds)


def record_statistics_latency(latency_seconds: float) -> None:
    statistics_latency_seconds.observe(latency_seconds)


def record_rate_limited() -> None:
    """Increment rate-limited requests counter."""
    rate_limited_total.inc()


def record_auth_failure(reason: str) -> None:
    """Increment the auth failure counter.

    Args:
        reason: Short label such as ``missing_token``, ``invalid_token``,
            ``unknown_user`` or ``bad_credentials``.
    """
    auth_failures_total.labels(reason=reason).inc()


def get_metrics_response() -> tuple[bytes, str]:
    """Body and content type for the ``/metrics`` endpoint."""
    return generate_latest(_REGISTRY), CONTENT_TYPE_LATEST


class LatencyTimer:
    """Wall-clock stopwatch; ``elapsed`` is set in seconds on exit.

    Usage::

        with LatencyTimer() as timer:
            report = collect_statistics(store)
        record_statistics_latency(timer.elapsed)
    """

    elapsed: float = 0.0

    def __enter__(self) -> LatencyTimer:
        self._started = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed = time.perf_counter() - self._started
