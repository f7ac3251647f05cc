"""Tests for DataExportClient."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from d8_data.domains.export.client import DataExportClient
from d8_data.domains.export.crds import DataExportCRDs
from d8_data.domains.export.models import VolumeKind
from d8_data.utils.errors import (
    D8DataError,
    NotFoundError,
    ResourceExistsError,
)

ExportFactory = Callable[..., dict[str, Any]]


class TestDataExportClient:
    """Test DataExportClient operations."""

    @pytest.fixture
    def client(self, mock_k8s: MagicMock) -> DataExportClient:
        """Create a DataExportClient with mocked K8sClient."""
        return DataExportClient(mock_k8s)

    def test_create(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test the create request body."""
        client.create("de-vd-disk", "ns", VolumeKind.VIRTUAL_DISK, "disk", ttl="5m", publish=True)

        crd, body = mock_k8s.create.call_args.args
        assert crd == DataExportCRDs.DATA_EXPORT
        assert mock_k8s.create.call_args.kwargs == {"namespace": "ns"}
        assert body == {
            "apiVersion": "deckhouse.io/v1alpha1",
            "kind": "DataExport",
            "metadata": {"name": "de-vd-disk", "namespace": "ns"},
            "spec": {
                "ttl": "5m",
                "publish": True,
                "targetRef": {"kind": "VirtualDisk", "name": "disk"},
            },
        }

    @pytest.mark.parametrize("ttl", [None, ""])
    def test_create_default_ttl(
        self, client: DataExportClient, mock_k8s: MagicMock, ttl: str | None
    ) -> None:
        """Test an empty ttl becomes the default."""
        client.create("x", "ns", VolumeKind.PERSISTENT_VOLUME_CLAIM, "data", ttl=ttl)

        body = mock_k8s.create.call_args.args[1]
        assert body["spec"]["ttl"] == "2m"
        assert body["spec"]["publish"] is False

    def test_create_is_idempotent(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test an existing session is not an error."""
        mock_k8s.create.side_effect = ResourceExistsError("DataExport", "x", "ns")

        client.create("x", "ns", VolumeKind.PERSISTENT_VOLUME_CLAIM, "data")

    def test_create_failure(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test other failures are reported as create errors."""
        mock_k8s.create.side_effect = D8DataError("Kubernetes API unreachable")

        with pytest.raises(D8DataError, match="DataExport create error: Kubernetes API"):
            client.create("x", "ns", VolumeKind.PERSISTENT_VOLUME_CLAIM, "data")

    def test_get(
        self, client: DataExportClient, mock_k8s: MagicMock, make_export: ExportFactory
    ) -> None:
        """Test getting a session."""
        mock_k8s.get.return_value = make_export(name="my-export", namespace="ns")

        export = client.get("my-export", "ns")

        assert export.name == "my-export"
        mock_k8s.get.assert_called_once_with(
            DataExportCRDs.DATA_EXPORT, "my-export", namespace="ns"
        )

    def test_get_not_found(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test a missing session is reported distinctly."""
        mock_k8s.get.side_effect = NotFoundError("DataExport", "x", "ns")

        with pytest.raises(NotFoundError):
            client.get("x", "ns")

    def test_delete(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test deleting a session."""
        client.delete("x", "ns")

        mock_k8s.delete.assert_called_once_with(DataExportCRDs.DATA_EXPORT, "x", namespace="ns")

    def test_delete_missing(self, client: DataExportClient, mock_k8s: MagicMock) -> None:
        """Test deleting a missing session succeeds."""
        mock_k8s.delete.side_effect = NotFoundError("DataExport", "x", "ns")

        client.delete("x", "ns")

    def test_list(
        self, client: DataExportClient, mock_k8s: MagicMock, make_export: ExportFactory
    ) -> None:
        """Test listing sessions across all namespaces."""
        mock_k8s.list_resources.return_value = [make_export(name="a"), make_export(name="b")]

        sessions = client.list()

        assert [s.name for s in sessions] == ["a", "b"]
        mock_k8s.list_resources.assert_called_once_with(DataExportCRDs.DATA_EXPORT, namespace=None)
