# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, start_http_server

from storefront.shared.config import load_config

_config = load_config()

TRANSITIONS = Counter(
    "storefront_transitions_total",
    "State transitions attempted on gifts and pre-orders",
    labelnames=("entity", "event", "outcome"),
)
CAPTURES = Counter(
    "storefront_payment_captures_total",
    "Payment capture outcomes",
    labelnames=("outcome",),
)
NOTIFICATION_FAILURES = Counter(
    "storefront_notification_failures_total",
    "Best-effort notifications that were dropped",
    labelnames=("kind", "reason"),
)
GRANT_FAILURES = Counter(
    "storefront_grant_failures_total",
    "Entitlement grants left for a later re-drive",
    labelnames=("entity",),
)
SWEEP_DURATION = Histogram(
    "storefront_sweep_duration_seconds",
    "Duration of one expiration sweep run",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60),
)


def record_transition(entity: str, event: str, outcome: str) -> None:
    if _config.observability.metrics_enabled:
        TRANSITIONS.labels(entity=entity, event=event, outcome=outcome).inc()


def record_capture(outcome: str) -> None:
    if _config.observability.metrics_enabled:
        CAPTURES.labels(outcome=outcome).inc()


def record_notification_failure(kind: str, reason: str) -> None:
    if _config.observability.metrics_enabled:
        NOTIFICATION_FAILURES.labels(kind=kind, reason=reason).inc()


def record_grant_failure(entity: str) -> None:
    if _config.observability.metrics_enabled:
        GRANT_FAILURES.labels(entity=entity).inc()


@contextmanager
def track_sweep() -> Iterator[None]:
    if not _config.observability.metrics_enabled:
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        SWEEP_DURATION.observe(time.perf_counter() - start)


def serve_metrics(port: int) -> bool:
    """Expose /metrics on ``port``; 0 or disabled metrics leaves it off."""

    if not port or not _config.observability.metrics_enabled:
        return False
    start_http_server(port)
    return True


__all__ = [
    "CAPTURES",
    "GRANT_FAILURES",
    "NOTIFICATION_FAILURES",
    "SWEEP_DURATION",
    "TRANSITIONS",
    "record_capture",
    "record_grant_failure",
    "record_notification_failure",
    "record_transition",
    "serve_metrics",
    "track_sweep",
]
