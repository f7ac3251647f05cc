"""Tests for transport preparation."""

import base64
from collections.abc import Callable
from typing import Any

import pytest

from d8_data.clients.http import Ownership, TrustedClient
from d8_data.domains.export.models import DataExport, VolumeMode
from d8_data.domains.export.transport import prepare_transport
from d8_data.utils.errors import TransportError, UnsupportedVolumeModeError

ExportFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def base_client() -> TrustedClient:
    """Shared client derived from the kubeconfig."""
    return TrustedClient(authorization="Bearer tok")


class TestPrepareTransport:
    """Tests for prepare_transport."""

    def test_filesystem_endpoint(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test filesystem sessions use the files API."""
        export = DataExport.from_resource(make_export(url="https://exporter.svc/"))

        prepared = prepare_transport(export, False, base_client)

        assert prepared.endpoint == "https://exporter.svc/api/v1/files"
        assert prepared.volume_mode is VolumeMode.FILESYSTEM

    def test_block_endpoint(self, make_export: ExportFactory, base_client: TrustedClient) -> None:
        """Test block sessions use the block API."""
        export = DataExport.from_resource(
            make_export(url="https://exporter.svc/de-vd-disk", volume_mode="Block")
        )

        prepared = prepare_transport(export, False, base_client)

        assert prepared.endpoint == "https://exporter.svc/de-vd-disk/api/v1/block"
        assert prepared.volume_mode is VolumeMode.BLOCK

    def test_public_url_scheme_prepended(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test a public URL without scheme gets https:// in front."""
        export = DataExport.from_resource(make_export(public_url="data.example.com/exp"))

        prepared = prepare_transport(export, True, base_client)

        assert prepared.endpoint == "https://data.example.com/exp/api/v1/files"

    def test_public_url_with_scheme_kept(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test a public URL that has a scheme is used as is."""
        export = DataExport.from_resource(make_export(public_url="http://data.example.com:8080"))

        prepared = prepare_transport(export, True, base_client)

        assert prepared.endpoint == "http://data.example.com:8080/api/v1/files"

    def test_empty_public_url(self, make_export: ExportFactory, base_client: TrustedClient) -> None:
        """Test publishing without a public URL fails."""
        export = DataExport.from_resource(make_export())

        with pytest.raises(TransportError, match="empty PublicURL"):
            prepare_transport(export, True, base_client)

    def test_missing_url(self, make_export: ExportFactory, base_client: TrustedClient) -> None:
        """Test a session without URL fails."""
        export = DataExport.from_resource(make_export(url=None))

        with pytest.raises(TransportError, match="invalid URL"):
            prepare_transport(export, False, base_client)

    @pytest.mark.parametrize("mode", ["Raw", None])
    def test_unsupported_volume_mode(
        self, make_export: ExportFactory, base_client: TrustedClient, mode: str | None
    ) -> None:
        """Test modes other than Filesystem and Block are rejected."""
        export = DataExport.from_resource(make_export(volume_mode=mode))

        with pytest.raises(UnsupportedVolumeModeError) as exc_info:
            prepare_transport(export, False, base_client)

        assert exc_info.value.volume_mode == (mode or "")

    def test_unknown_kind(self, make_export: ExportFactory, base_client: TrustedClient) -> None:
        """Test an unknown target kind is rejected."""
        export = DataExport.from_resource(make_export(kind="ConfigMap"))

        with pytest.raises(TransportError, match="invalid volume kind"):
            prepare_transport(export, False, base_client)

    def test_ca_injected_into_copy(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test the session CA goes into a new client, never the shared one."""
        ca = base64.b64encode(b"-----BEGIN CERTIFICATE-----").decode()
        export = DataExport.from_resource(make_export(ca=ca))

        prepared = prepare_transport(export, False, base_client)

        assert prepared.client is not base_client
        assert prepared.client.ownership == Ownership.OWNED
        assert prepared.client.extra_ca == b"-----BEGIN CERTIFICATE-----"
        assert base_client.extra_ca is None
        assert base_client.ownership == Ownership.SHARED

    def test_published_session_ignores_ca(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test the public endpoint uses the shared client unchanged."""
        ca = base64.b64encode(b"pem").decode()
        export = DataExport.from_resource(make_export(ca=ca, public_url="https://pub"))

        prepared = prepare_transport(export, True, base_client)

        assert prepared.client is base_client

    def test_no_ca_uses_shared_client(
        self, make_export: ExportFactory, base_client: TrustedClient
    ) -> None:
        """Test sessions without CA share the base client."""
        export = DataExport.from_resource(make_export())

        assert prepare_transport(export, False, base_client).client is base_client

    def test_invalid_ca(self, make_export: ExportFactory, base_client: TrustedClient) -> None:
        """Test undecodable CA data is reported."""
        export = DataExport.from_resource(make_export(ca="not base64!"))

        with pytest.raises(TransportError, match="CA decoding error"):
            prepare_transport(export, False, base_client)
