from __future__ import annotations

"""
Prometheus metrics for the tier accounting engine.

We expose counters and a histogram covering:
- operations: every engine entry point by op and result (ok | error code)
- credit flow: asset units moved per path (deposit / spend / withdraw / mint)
- renewals: periods purchased and native value forwarded to fee sinks
- tier lookups: active vs. inactive results
- latency: wall time per engine operation

Metrics live in a dedicated registry so embedding apps can merge or expose it
directly; the helpers at the bottom mount it on ASGI/FastAPI apps.
"""


import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Histogram, generate_latest)

REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   op: "register" | "set_terms" | "receive_credit" | "withdraw" | "renew" | "mint"
#   result: "ok" | <TierError.code>
#   path: "deposit" | "spend" | "withdraw" | "mint"
#   outcome: "active" | "inactive"
# ────────────────────────────────────────────────────────────────────────────────

OPERATIONS = Counter(
    "tierledger_operations_total",
    "Engine operations by op and result.",
    labelnames=("op", "result"),
    registry=REGISTRY,
)

CREDIT_UNITS = Counter(
    "tierledger_credit_units_total",
    "Asset units moved through the ledger, by path.",
    labelnames=("path",),
    registry=REGISTRY,
)

RENEWAL_PERIODS = Counter(
    "tierledger_renewal_periods_total",
    "Renewal periods purchased.",
    registry=REGISTRY,
)

RENEWAL_FEES = Counter(
    "tierledger_renewal_fees_total",
    "Native value forwarded to fee sinks by renewals.",
    registry=REGISTRY,
)

TIER_LOOKUPS = Counter(
    "tierledger_tier_lookups_total",
    "Tier lookups by outcome.",
    labelnames=("outcome",),
    registry=REGISTRY,
)

OPERATION_SECONDS = Histogram(
    "tierledger_operation_seconds",
    "Wall time spent in an engine operation, by op.",
    labelnames=("op",),
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_result(op: str, result: str = "ok") -> None:
    OPERATIONS.labels(op=op, result=result).inc()


def record_credit(path: str, amount: int) -> None:
    if amount > 0:
        CREDIT_UNITS.labels(path=path).inc(amount)


def record_renewal(periods: int, fee: int) -> None:
    RENEWAL_PERIODS.inc(max(0, periods))
    if fee > 0:
        RENEWAL_FEES.inc(fee)


def record_tier_lookup(active: bool) -> None:
    TIER_LOOKUPS.labels(outcome="active" if active else "inactive").inc()


@contextmanager
def time_operation(op: str) -> Iterator[None]:
    """Context manager observing the latency of one engine operation."""
    start = time.perf_counter()
    try:
        yield
    finally:
        OPERATION_SECONDS.labels(op=op).observe(time.perf_counter() - start)


# ────────────────────────────────────────────────────────────────────────────────
# ASGI/FastAPI mounting helpers
# ────────────────────────────────────────────────────────────────────────────────


def make_prometheus_asgi_app(registry: Optional[CollectorRegistry] = None):
    """
    Return a minimal ASGI app that serves Prometheus metrics at '/'.
    """
    reg = registry or REGISTRY

    async def app(scope, receive, send):  # type: ignore[override]
        if scope["type"] != "http" or (scope.get("path") or "/") != "/":
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b"Not Found"})
            return
        payload = generate_latest(reg)
        headers = [
            (b"content-type", CONTENT_TYPE_LATEST.encode("ascii")),
            (b"cache-control", b"no-cache, no-store, must-revalidate"),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": payload})

    return app


def mount_fastapi(app, path: str = "/metrics", registry: Optional[CollectorRegistry] = None) -> None:
    """
    Mount a GET {path} endpoint on a FastAPI app to serve metrics.
    """
    from fastapi import Response

    reg = registry or REGISTRY

    @app.get(path)
    def _metrics() -> Response:
        return Response(generate_latest(reg), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "OPERATIONS",
    "CREDIT_UNITS",
    "RENEWAL_PERIODS",
    "RENEWAL_FEES",
    "TIER_LOOKUPS",
    "OPERATION_SECONDS",
    "record_result",
    "record_credit",
    "record_renewal",
    "record_tier_lookup",
    "time_operation",
    "make_prometheus_asgi_app",
    "mount_fastapi",
]
