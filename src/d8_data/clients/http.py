"""HTTP client settings for talking to export endpoints.

A TrustedClient is an immutable value: it describes credentials and trust
material and builds fresh ``httpx.AsyncClient`` instances on demand. The
instance derived from the kubeconfig is shared by every caller; injecting an
export session's CA always produces a new, owned value.
"""

from __future__ import annotations

import dataclasses
import logging
import ssl
from dataclasses import dataclass, field
from enum import Enum

import httpx

from d8_data.utils.errors import AuthenticationError, TransportError

logger = logging.getLogger(__name__)


class Ownership(str, Enum):
    """Whether a client value may be handed to other callers."""

    SHARED = "shared"
    OWNED = "owned"


@dataclass(frozen=True)
class TrustedClient:
    """Credentials and trust material for export endpoint requests."""

    authorization: str | None = None
    cert_file: str | None = None
    key_file: str | None = None
    cluster_ca_file: str | None = None
    extra_ca: bytes | None = field(default=None, repr=False)
    insecure: bool = False
    allow_anonymous: bool = False
    timeout: float = 30.0
    ownership: Ownership = Ownership.SHARED
    # Replaces the network layer, e.g. with httpx.MockTransport.
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)

    @property
    def has_credentials(self) -> bool:
        """Whether requests will carry a token or a client certificate."""
        return bool(self.authorization) or bool(self.cert_file and self.key_file)

    def with_ca(self, ca_data: bytes) -> TrustedClient:
        """Return a new owned client that additionally trusts ``ca_data`` (PEM)."""
        return dataclasses.replace(self, extra_ca=bytes(ca_data), ownership=Ownership.OWNED)

    def ssl_context(self) -> ssl.SSLContext:
        """Build the TLS context: system trust plus cluster and injected CAs.

        Raises:
            TransportError: If the CA material cannot be loaded.
        """
        context = ssl.create_default_context()
        try:
            if self.insecure:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            else:
                if self.cluster_ca_file:
                    context.load_verify_locations(cafile=self.cluster_ca_file)
                if self.extra_ca:
                    context.load_verify_locations(cadata=self.extra_ca.decode("ascii"))
            if self.cert_file and self.key_file:
                context.load_cert_chain(self.cert_file, self.key_file)
        except (ssl.SSLError, OSError, UnicodeDecodeError) as e:
            raise TransportError(f"Failed to load TLS material: {e}") from e
        return context

    def headers(self) -> dict[str, str]:
        """Request headers carrying the credentials."""
        headers: dict[str, str] = {}
        if self.authorization:
            headers["Authorization"] = self.authorization
        return headers

    def async_client(self) -> httpx.AsyncClient:
        """Create an ``httpx.AsyncClient`` configured from this value.

        Raises:
            AuthenticationError: If there are no credentials and anonymous
                access is not allowed.
        """
        if not self.has_credentials and not self.allow_anonymous:
            raise AuthenticationError("no auth credentials")

        if self.transport is not None:
            return httpx.AsyncClient(
                headers=self.headers(),
                timeout=self.timeout,
                transport=self.transport,
            )

        logger.debug(f"Creating HTTP client (ownership={self.ownership.value})")
        return httpx.AsyncClient(
            headers=self.headers(),
            timeout=self.timeout,
            verify=self.ssl_context(),
        )
