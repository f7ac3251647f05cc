"""Shared pytest fixtures for d8-data tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from d8_data.config import DataConfig

READY = [{"type": "Ready", "status": "True"}]


def make_export_resource(
    name: str = "de-pvc-data",
    namespace: str = "d8-data-exporter",
    kind: str = "PersistentVolumeClaim",
    volume: str = "data",
    ttl: str | None = "2m",
    publish: bool = False,
    url: str | None = "https://exporter.d8-data-exporter.svc/",
    public_url: str | None = None,
    ca: str | None = None,
    volume_mode: str | None = "Filesystem",
    conditions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a serialized DataExport resource as returned by the API."""
    status: dict[str, Any] = {
        "conditions": READY if conditions is None else conditions,
    }
    if url is not None:
        status["url"] = url
    if public_url is not None:
        status["publicURL"] = public_url
    if ca is not None:
        status["ca"] = ca
    if volume_mode is not None:
        status["volumeMode"] = volume_mode

    spec: dict[str, Any] = {
        "publish": publish,
        "targetRef": {"kind": kind, "name": volume},
    }
    if ttl is not None:
        spec["ttl"] = ttl

    return {
        "apiVersion": "deckhouse.io/v1alpha1",
        "kind": "DataExport",
        "metadata": {"name": name, "namespace": namespace, "uid": f"uid-{name}"},
        "spec": spec,
        "status": status,
    }


@pytest.fixture
def make_export() -> Callable[..., dict[str, Any]]:
    """Factory for serialized DataExport resources."""
    return make_export_resource


@pytest.fixture
def mock_k8s() -> MagicMock:
    """Create a mock K8sClient."""
    return MagicMock()


@pytest.fixture
def fast_config(monkeypatch: pytest.MonkeyPatch) -> DataConfig:
    """Config with short poll and teardown intervals, isolated from the environment."""
    for var in ("D8_DATA_NAMESPACE", "D8_DATA_TTL", "D8_DATA_CONCURRENCY"):
        monkeypatch.delenv(var, raising=False)
    return DataConfig(
        poll_interval=0.01,
        poll_attempts=5,
        teardown_timeout=0.1,
        concurrency=4,
    )
