"""Tests for the /metrics registry selection."""

from prometheus_client import REGISTRY

from x402mint.api.minter_api.metrics import metrics_registry


def test_single_process_uses_default_registry(monkeypatch):
    monkeypatch.delenv("PROMETHEUS_MULTIPROC_DIR", raising=False)
    assert metrics_registry() is REGISTRY


def test_multiprocess_dir_aggregates_worker_files(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMETHEUS_MULTIPROC_DIR", str(tmp_path))

    registry = metrics_registry()

    assert registry is not REGISTRY
    assert list(registry.collect()) == []
