"""Prometheus exposition for the minter API."""

from __future__ import annotations

import os

from prometheus_client import REGISTRY, CollectorRegistry, make_asgi_app, multiprocess


def metrics_registry() -> CollectorRegistry:
    """Registry served at ``/metrics``.

    When ``PROMETHEUS_MULTIPROC_DIR`` is set every Uvicorn worker writes its
    samples there, and a scrape aggregates all of them.
    """
    if not os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        return REGISTRY
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


def build_metrics_app():
    return make_asgi_app(registry=metrics_registry())
