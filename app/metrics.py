# app/metrics.py
from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import REGISTRY, CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest, multiprocess

# business metrics
ORDERS_CREATED = Counter("orders_created_total", "Orders committed")
ORDER_TRANSITIONS = Counter("order_transitions_total", "Accepted order status changes", ["to"])
TX_CONFLICTS = Counter("tx_conflicts_total", "Units of work that hit a ConcurrencyConflict", ["op"])
LOW_STOCK_ALERTS = Counter("low_stock_notifications_total", "LOW_STOCK notifications written")
NOTIFY_FAILURES = Counter("notification_failures_total", "Notification emissions dropped after an error")
TX_LATENCY = Histogram("tx_duration_seconds", "Unit-of-work wall time incl. retries (seconds)", ["op"])

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics() -> Response:
    """
    Single process: export the default REGISTRY.
    Multi process (PROMETHEUS_MULTIPROC_DIR set): merge the shards into a
    throwaway CollectorRegistry.
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
