"""Tests for TrustedClient."""

import ssl
from pathlib import Path

import httpx
import pytest

from d8_data.clients.http import Ownership, TrustedClient
from d8_data.utils.errors import AuthenticationError, TransportError


class TestTrustedClient:
    """Tests for TrustedClient values."""

    def test_with_ca_returns_owned_copy(self) -> None:
        """Test CA injection never touches the shared instance."""
        shared = TrustedClient(authorization="Bearer t")

        owned = shared.with_ca(b"-----BEGIN CERTIFICATE-----")

        assert owned is not shared
        assert owned.ownership == Ownership.OWNED
        assert owned.extra_ca == b"-----BEGIN CERTIFICATE-----"
        assert owned.authorization == "Bearer t"
        assert shared.ownership == Ownership.SHARED
        assert shared.extra_ca is None

    def test_with_ca_on_owned_copy_is_new_again(self) -> None:
        """Test every injection produces a fresh value."""
        first = TrustedClient(authorization="Bearer t").with_ca(b"a")
        second = first.with_ca(b"b")

        assert second is not first
        assert first.extra_ca == b"a"
        assert second.extra_ca == b"b"

    def test_has_credentials(self) -> None:
        """Test token or client certificate count as credentials."""
        assert TrustedClient(authorization="Bearer t").has_credentials
        assert TrustedClient(cert_file="c.pem", key_file="k.pem").has_credentials
        assert not TrustedClient(cert_file="c.pem").has_credentials
        assert not TrustedClient().has_credentials

    def test_no_credentials_rejected(self) -> None:
        """Test building a client without credentials fails by default."""
        with pytest.raises(AuthenticationError, match="no auth credentials"):
            TrustedClient().async_client()

    async def test_anonymous_allowed_when_enabled(self) -> None:
        """Test anonymous clients can be built when explicitly allowed."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        client = TrustedClient(allow_anonymous=True, transport=transport)

        async with client.async_client() as http:
            response = await http.get("https://exporter.svc/")

        assert response.status_code == 200
        assert "Authorization" not in response.request.headers

    async def test_authorization_header_sent(self) -> None:
        """Test requests carry the bearer token."""
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization", ""))
            return httpx.Response(200)

        client = TrustedClient(authorization="Bearer tok", transport=httpx.MockTransport(handler))
        async with client.async_client() as http:
            await http.get("https://exporter.svc/api/v1/files/")

        assert seen == ["Bearer tok"]

    def test_insecure_context_skips_verification(self) -> None:
        """Test insecure mode disables certificate and hostname checks."""
        context = TrustedClient(authorization="Bearer t", insecure=True).ssl_context()

        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_default_context_verifies(self) -> None:
        """Test the default context verifies peers."""
        context = TrustedClient(authorization="Bearer t").ssl_context()

        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname is True

    def test_invalid_ca_data(self) -> None:
        """Test unusable CA material is reported as a transport error."""
        client = TrustedClient(authorization="Bearer t").with_ca(b"not a certificate")

        with pytest.raises(TransportError):
            client.ssl_context()

    def test_missing_cluster_ca_file(self, tmp_path: Path) -> None:
        """Test a missing CA file is reported as a transport error."""
        client = TrustedClient(
            authorization="Bearer t", cluster_ca_file=str(tmp_path / "missing.crt")
        )

        with pytest.raises(TransportError):
            client.ssl_context()
