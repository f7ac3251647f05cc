"""Recursive, bounded-concurrency transfers from an export server."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import Coroutine
from typing import Any, BinaryIO
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from d8_data.clients.http import TrustedClient
from d8_data.domains.export.models import DirListing, TransferTask, VolumeMode
from d8_data.utils.errors import (
    ArgumentError,
    D8DataError,
    HTTPStatusError,
    OperationCancelledError,
    TransferError,
    TransportError,
)
from d8_data.utils.quantity import format_binary_quantity
from d8_data.utils.urls import join_url

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10

# Bytes of an error response body kept for the error message
DOWNLOAD_ERROR_BODY_LIMIT = 1000
LIST_ERROR_BODY_LIMIT = 4096

_INVALID_NAMES = {"", ".", ".."}


class FanOut:
    """Runs child transfers concurrently and keeps the first failure.

    ``wait()`` returns only after every child has finished, then raises the
    first recorded error, if any.
    """

    def __init__(self) -> None:
        self._tasks: list[asyncio.Task[None]] = []
        self.first_error: Exception | None = None

    def spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        """Start a child."""
        self._tasks.append(asyncio.ensure_future(self._run(coro)))

    async def _run(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            await coro
        except Exception as e:
            if self.first_error is None:
                self.first_error = e
            else:
                logger.debug(f"Additional transfer failure: {e}")

    async def wait(self) -> None:
        """Wait for all children, then raise the first failure."""
        await asyncio.gather(*self._tasks)
        if self.first_error is not None:
            raise self.first_error


def _check_item_name(name: str, directory: str) -> None:
    if name in _INVALID_NAMES or "/" in name or "\0" in name:
        raise TransferError(f"download {directory}: invalid entry name {name!r} in listing")


async def _status_error(response: httpx.Response, limit: int) -> HTTPStatusError:
    body = b""
    async for chunk in response.aiter_bytes():
        body += chunk
        if len(body) >= limit:
            break
    text = body[:limit].decode("utf-8", errors="replace").strip()
    return HTTPStatusError(response.status_code, response.reason_phrase, text)


class TransferEngine:
    """Downloads files and directory trees from an export server.

    At most ``concurrency`` requests are in flight at any time. A request
    slot is held while the request runs and its body is consumed, never
    while waiting for child transfers.
    """

    def __init__(
        self,
        client: TrustedClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        cancel: asyncio.Event | None = None,
        stdout: BinaryIO | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._semaphore = asyncio.Semaphore(concurrency)
        self._cancel = cancel
        self._stdout = stdout
        self.files_downloaded = 0

    async def download(self, endpoint: str, remote_path: str, local_path: str | None) -> int:
        """Download ``remote_path`` below ``endpoint`` to ``local_path``.

        A remote path ending with ``/`` is downloaded recursively into the
        ``local_path`` directory. An empty remote path fetches the endpoint
        itself (block devices). A ``local_path`` of None writes to standard
        output.

        Returns:
            Number of files written.

        Raises:
            TransferError: If any part of the transfer failed.
            OperationCancelledError: If cancellation was requested.
        """
        self._check_cancelled()
        async with self._client.async_client() as http:
            await self._visit(http, endpoint, TransferTask(remote_path, local_path))
        logger.info(f"Downloaded {self.files_downloaded} file(s)")
        return self.files_downloaded

    async def list(
        self, endpoint: str, remote_path: str, volume_mode: VolumeMode
    ) -> DirListing | str:
        """List a directory, or report the size of a block device.

        Raises:
            ArgumentError: If a filesystem path does not end with ``/``.
            TransportError: If the server cannot be queried.
        """
        if volume_mode is VolumeMode.FILESYSTEM and not remote_path.endswith("/"):
            raise ArgumentError(f"path must be a directory ending with '/': {remote_path}")
        self._check_cancelled()

        async with self._client.async_client() as http:
            if volume_mode is VolumeMode.FILESYSTEM:
                return await self._fetch_listing(http, self._url(endpoint, remote_path))
            return await self._block_size(http, endpoint)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _url(endpoint: str, remote_path: str) -> str:
        if not remote_path:
            return endpoint
        return join_url(endpoint, quote(remote_path))

    def _check_cancelled(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelledError()

    async def _visit(self, http: httpx.AsyncClient, endpoint: str, task: TransferTask) -> None:
        self._check_cancelled()
        display = task.remote_path or endpoint
        try:
            if task.is_dir:
                await self._download_dir(http, endpoint, task)
            else:
                await self._download_file(http, endpoint, task)
        except (TransferError, OperationCancelledError):
            raise
        except D8DataError as e:
            raise TransferError(f"download {display}: {e.message}") from e
        except OSError as e:
            raise TransferError(f"download {display}: {e}") from e

    async def _download_dir(
        self, http: httpx.AsyncClient, endpoint: str, task: TransferTask
    ) -> None:
        if task.local_path is None:
            raise ArgumentError("a directory cannot be written to standard output")

        listing = await self._fetch_listing(http, self._url(endpoint, task.remote_path))
        for item in listing.items:
            _check_item_name(item.name, task.remote_path)

        os.makedirs(task.local_path, exist_ok=True)
        logger.debug(f"{task.remote_path}: {len(listing.items)} entries")

        group = FanOut()
        for item in listing.items:
            local = os.path.join(task.local_path, item.name)
            if item.is_dir:
                os.makedirs(local, exist_ok=True)
                remote = f"{task.remote_path}{item.name}/"
            else:
                remote = f"{task.remote_path}{item.name}"
            group.spawn(self._visit(http, endpoint, TransferTask(remote, local, task.depth + 1)))
        await group.wait()

    async def _download_file(
        self, http: httpx.AsyncClient, endpoint: str, task: TransferTask
    ) -> None:
        url = self._url(endpoint, task.remote_path)
        async with self._semaphore:
            self._check_cancelled()
            try:
                async with http.stream("GET", url) as response:
                    if not response.is_success:
                        raise await _status_error(response, DOWNLOAD_ERROR_BODY_LIMIT)
                    if task.local_path is None:
                        # Standard output only ever receives a single file node.
                        out = self._stdout or sys.stdout.buffer
                        async for chunk in response.aiter_bytes():
                            out.write(chunk)
                        out.flush()
                    else:
                        with open(task.local_path, "wb") as f:
                            async for chunk in response.aiter_bytes():
                                f.write(chunk)
            except httpx.HTTPError as e:
                raise TransportError(f"request {url} failed: {e}") from e

        self.files_downloaded += 1
        logger.debug(f"Downloaded {task.remote_path or url} -> {task.local_path or '<stdout>'}")

    async def _fetch_listing(self, http: httpx.AsyncClient, url: str) -> DirListing:
        async with self._semaphore:
            self._check_cancelled()
            try:
                async with http.stream("GET", url) as response:
                    if not response.is_success:
                        raise await _status_error(response, LIST_ERROR_BODY_LIMIT)
                    content = await response.aread()
            except httpx.HTTPError as e:
                raise TransportError(f"request {url} failed: {e}") from e

        try:
            return DirListing.model_validate_json(content)
        except ValidationError as e:
            raise TransportError(f"invalid directory listing from {url}: {e}") from e

    async def _block_size(self, http: httpx.AsyncClient, endpoint: str) -> str:
        async with self._semaphore:
            self._check_cancelled()
            try:
                response = await http.head(endpoint)
            except httpx.HTTPError as e:
                raise TransportError(f"request {endpoint} failed: {e}") from e

        if not response.is_success:
            raise HTTPStatusError(response.status_code, response.reason_phrase)

        length = response.headers.get("Content-Length")
        try:
            size = int(length) if length is not None else -1
        except ValueError:
            size = -1
        if size < 0:
            raise TransportError(f"no usable Content-Length in response from {endpoint}")
        return f"Disk size: {format_binary_quantity(size)}"
