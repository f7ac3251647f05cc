"""Export command orchestration.

Each command resolves its target, waits for the session, prepares the
transport, runs the transfer and finally offers to tear down a session that
it created itself.
"""

from __future__ import annotations

import asyncio
import logging
import os
import posixpath
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, TextIO

from d8_data.domains.export.client import DataExportClient
from d8_data.domains.export.models import DataExport, DirListing, VolumeMode
from d8_data.domains.export.publish import resolve_publish
from d8_data.domains.export.readiness import ReadinessPoller
from d8_data.domains.export.resolver import SessionResolver, parse_volume_ref
from d8_data.domains.export.teardown import offer_teardown
from d8_data.domains.export.transfer import TransferEngine
from d8_data.domains.export.transport import PreparedTransport, prepare_transport
from d8_data.utils.errors import ArgumentError, D8DataError, OperationCancelledError

if TYPE_CHECKING:
    from d8_data.clients.base import K8sClient
    from d8_data.clients.http import TrustedClient
    from d8_data.config import DataConfig

logger = logging.getLogger(__name__)

STDOUT_PATH = "-"


@dataclass
class DownloadResult:
    """Outcome of a download command."""

    name: str
    created: bool
    local_path: str | None = None
    files_downloaded: int = 0


def download_paths(
    volume_mode: VolumeMode, session_name: str, src_path: str | None, dst_path: str | None
) -> tuple[str, str | None]:
    """Work out the remote path and the local destination of a download.

    Returns:
        Remote path (empty for block devices) and local path (None for
        standard output).

    Raises:
        ArgumentError: If a filesystem download has no source path, or a
            directory would be written to standard output.
    """
    if volume_mode is VolumeMode.BLOCK:
        if dst_path == STDOUT_PATH:
            return "", None
        return "", dst_path or session_name

    if not src_path:
        raise ArgumentError("source path is required for Filesystem volume mode")
    remote = src_path if src_path.startswith("/") else f"/{src_path}"

    if dst_path == STDOUT_PATH:
        if remote.endswith("/"):
            raise ArgumentError("a directory cannot be written to standard output")
        return remote, None

    basename = posixpath.basename(remote.rstrip("/"))
    if not dst_path:
        return remote, basename or "."
    if not remote.endswith("/") and os.path.isdir(dst_path):
        return remote, os.path.join(dst_path, basename)
    return remote, dst_path


class DataExportService:
    """Runs the export commands against one cluster."""

    def __init__(
        self,
        k8s: K8sClient,
        config: DataConfig,
        cancel: asyncio.Event | None = None,
        http_client: TrustedClient | None = None,
        stdout: BinaryIO | None = None,
        prompt_stream: TextIO | None = None,
        prompt_out: TextIO | None = None,
        interactive: bool | None = None,
    ) -> None:
        self._k8s = k8s
        self._config = config
        self._cancel = cancel if cancel is not None else asyncio.Event()
        self._http_client = http_client
        self._stdout = stdout
        self._prompt_stream = prompt_stream
        self._prompt_out = prompt_out
        self._interactive = interactive
        self._client = DataExportClient(k8s)
        self._resolver = SessionResolver(self._client)

    @property
    def client(self) -> DataExportClient:
        """Lifecycle client used by the service."""
        return self._client

    # -------------------------------------------------------------------------
    # Resource commands
    # -------------------------------------------------------------------------

    async def create(
        self,
        name: str,
        volume: str,
        namespace: str | None = None,
        ttl: str | None = None,
        publish: bool = False,
    ) -> None:
        """Create a session named ``name`` for ``<kind>/<volume>``."""
        ref = parse_volume_ref(volume)
        await asyncio.to_thread(
            self._client.create,
            name,
            namespace or self._config.namespace,
            ref.kind,
            ref.name,
            ttl or self._config.ttl,
            publish,
        )

    async def delete(self, name: str, namespace: str | None = None) -> None:
        """Delete a session."""
        await asyncio.to_thread(self._client.delete, name, namespace or self._config.namespace)

    async def get(self, name: str, namespace: str | None = None) -> DataExport:
        """Get a session."""
        return await asyncio.to_thread(
            self._client.get, name, namespace or self._config.namespace
        )

    # -------------------------------------------------------------------------
    # Transfer commands
    # -------------------------------------------------------------------------

    async def download(
        self,
        token: str,
        src_path: str | None = None,
        dst_path: str | None = None,
        namespace: str | None = None,
        ttl: str | None = None,
        publish: bool | None = None,
    ) -> DownloadResult:
        """Download data from a session or a volume.

        Raises:
            TransferError: If any part of the transfer failed. The teardown
                prompt has been offered by then.
        """
        namespace = namespace or self._config.namespace
        name, created, publish_mode = await self._resolve(token, namespace, ttl, publish)
        result = DownloadResult(name=name, created=created)

        failure: D8DataError | None = None
        try:
            transport = await self._prepare(name, namespace, publish_mode)
            remote, local = download_paths(transport.volume_mode, name, src_path, dst_path)
            result.local_path = local
            logger.info(f"Downloading {transport.endpoint}{remote} to {local or '<stdout>'}")

            engine = TransferEngine(
                transport.client,
                concurrency=self._config.concurrency,
                cancel=self._cancel,
                stdout=self._stdout,
            )
            try:
                await engine.download(transport.endpoint, remote, local)
            finally:
                result.files_downloaded = engine.files_downloaded
        except OperationCancelledError:
            raise
        except D8DataError as e:
            failure = e

        await self._teardown(name, namespace, created)
        if failure is not None:
            raise failure
        return result

    async def list(
        self,
        token: str,
        path: str | None = None,
        namespace: str | None = None,
        ttl: str | None = None,
        publish: bool | None = None,
    ) -> DirListing | str:
        """List a directory of a session, or report the size of a block device."""
        namespace = namespace or self._config.namespace
        name, created, publish_mode = await self._resolve(token, namespace, ttl, publish)
        remote = path or "/"
        if not remote.startswith("/"):
            remote = f"/{remote}"

        failure: D8DataError | None = None
        listing: DirListing | str = ""
        try:
            transport = await self._prepare(name, namespace, publish_mode)
            engine = TransferEngine(
                transport.client, concurrency=self._config.concurrency, cancel=self._cancel
            )
            listing = await engine.list(transport.endpoint, remote, transport.volume_mode)
        except OperationCancelledError:
            raise
        except D8DataError as e:
            failure = e

        await self._teardown(name, namespace, created)
        if failure is not None:
            raise failure
        return listing

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _base_client(self) -> TrustedClient:
        if self._http_client is None:
            self._http_client = self._k8s.http_client(
                allow_anonymous=self._config.allow_anonymous,
                timeout=self._config.http_timeout,
            )
        return self._http_client

    async def _resolve(
        self, token: str, namespace: str, ttl: str | None, publish: bool | None
    ) -> tuple[str, bool, bool]:
        publish_mode = await asyncio.to_thread(resolve_publish, publish, self._k8s)
        name, created = await self._resolver.resolve(
            token, namespace, ttl or self._config.ttl, publish_mode
        )
        return name, created, publish_mode

    async def _prepare(self, name: str, namespace: str, publish: bool) -> PreparedTransport:
        poller = ReadinessPoller(
            self._client,
            interval=self._config.poll_interval,
            attempts=self._config.poll_attempts,
            cancel=self._cancel,
        )
        export = await poller.wait(name, namespace, publish)
        return prepare_transport(export, publish, self._base_client())

    async def _teardown(self, name: str, namespace: str, created: bool) -> None:
        await offer_teardown(
            self._client,
            name,
            namespace,
            created,
            timeout=self._config.teardown_timeout,
            stream=self._prompt_stream,
            out=self._prompt_out,
            interactive=self._interactive,
        )
