"""Derive the data endpoint and HTTP client for a ready export session."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

from d8_data.clients.http import TrustedClient
from d8_data.domains.export.models import DataExport, VolumeKind, VolumeMode
from d8_data.utils.errors import TransportError, UnsupportedVolumeModeError
from d8_data.utils.urls import join_url

logger = logging.getLogger(__name__)

FILES_PATH = "api/v1/files"
BLOCK_PATH = "api/v1/block"


@dataclass(frozen=True)
class PreparedTransport:
    """Where and how to fetch the data of a session."""

    endpoint: str
    volume_mode: VolumeMode
    client: TrustedClient


def _with_scheme(url: str) -> str:
    if "://" in url:
        return url
    return f"https://{url.lstrip('/')}"


def prepare_transport(
    export: DataExport, publish: bool, client: TrustedClient
) -> PreparedTransport:
    """Build the data endpoint and the client to use for it.

    Performs no network I/O. The given client is never modified; when the
    session carries its own CA, a new client trusting it is returned.

    Raises:
        TransportError: If the session has no usable URL, an unknown kind or
            undecodable CA data.
        UnsupportedVolumeModeError: If the volume mode is neither Filesystem
            nor Block.
    """
    status = export.status

    if publish:
        if not status.public_url:
            raise TransportError("empty PublicURL")
        base_url = _with_scheme(status.public_url)
    else:
        if not status.url:
            raise TransportError(f"invalid URL: no usable URL in DataExport {export.name}")
        base_url = status.url

    try:
        VolumeKind(export.spec.target_ref.kind)
    except ValueError as e:
        raise TransportError(f"invalid volume kind: '{export.spec.target_ref.kind}'") from e

    try:
        volume_mode = VolumeMode(status.volume_mode or "")
    except ValueError as e:
        raise UnsupportedVolumeModeError(status.volume_mode or "") from e

    path = FILES_PATH if volume_mode is VolumeMode.FILESYSTEM else BLOCK_PATH
    endpoint = join_url(base_url, path)

    if publish or not status.ca:
        prepared_client = client
    else:
        try:
            ca_data = base64.b64decode(status.ca, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportError(f"CA decoding error: {e}") from e
        prepared_client = client.with_ca(ca_data)

    logger.debug(f"Data endpoint {endpoint} ({volume_mode.value})")
    return PreparedTransport(endpoint=endpoint, volume_mode=volume_mode, client=prepared_client)
