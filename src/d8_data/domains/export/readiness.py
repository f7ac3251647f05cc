"""Wait for an export session to become usable."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from d8_data.domains.export.models import DataExport, VolumeKind
from d8_data.utils.errors import D8DataError, OperationCancelledError, SessionNotReadyError

if TYPE_CHECKING:
    from d8_data.domains.export.client import DataExportClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_POLL_ATTEMPTS = 60


class PollState(str, Enum):
    """States of the readiness loop."""

    FETCHING = "fetching"
    RECREATING = "recreating"
    CHECKING_READY = "checking_ready"
    READY = "ready"
    FAILED = "failed"


class ReadinessPoller:
    """Polls a DataExport until it is ready, recreating it if it expires.

    Every fetch consumes one attempt. When the attempts run out, the error
    recorded by the last attempt is raised unchanged.
    """

    def __init__(
        self,
        client: DataExportClient,
        interval: float = DEFAULT_POLL_INTERVAL,
        attempts: int = DEFAULT_POLL_ATTEMPTS,
        cancel: asyncio.Event | None = None,
    ) -> None:
        self._client = client
        self._interval = interval
        self._attempts = attempts
        self._cancel = cancel
        self.state = PollState.FETCHING
        self.attempts_used = 0

    async def wait(self, name: str, namespace: str, publish: bool = False) -> DataExport:
        """Return the first snapshot of the session that is ready for transfers.

        Raises:
            SessionNotReadyError: If the session is not ready after all attempts.
            OperationCancelledError: If cancellation was requested.
            D8DataError: If the session cannot be read or recreated.
        """
        self.state = PollState.FETCHING
        self.attempts_used = 0
        last_error: D8DataError | None = None

        while self.attempts_used < self._attempts:
            if self.attempts_used > 0:
                await self._sleep()
            self._check_cancelled()

            self.state = PollState.FETCHING
            self.attempts_used += 1
            try:
                export = await asyncio.to_thread(self._client.get, name, namespace)
            except D8DataError:
                self.state = PollState.FAILED
                raise

            if export.is_expired:
                self.state = PollState.RECREATING
                try:
                    await asyncio.to_thread(self._recreate, export)
                except D8DataError:
                    self.state = PollState.FAILED
                    raise
                last_error = SessionNotReadyError(
                    f"DataExport {namespace}/{name} expired, recreated"
                )
                continue

            self.state = PollState.CHECKING_READY
            error = self._readiness_error(export, publish)
            if error is None:
                self.state = PollState.READY
                logger.info(f"DataExport {namespace}/{name} is ready")
                return export
            logger.debug(f"Attempt {self.attempts_used}/{self._attempts}: {error}")
            last_error = error

        self.state = PollState.FAILED
        raise last_error or SessionNotReadyError(f"DataExport {namespace}/{name} is not Ready")

    def _recreate(self, export: DataExport) -> None:
        namespace = export.namespace or ""
        target = export.spec.target_ref
        try:
            kind = VolumeKind(target.kind)
        except ValueError as e:
            raise SessionNotReadyError(
                f"DataExport {namespace}/{export.name} expired and cannot be recreated: "
                f"unsupported volume kind '{target.kind}'"
            ) from e

        logger.warning(f"DataExport {namespace}/{export.name} expired, recreating")
        self._client.delete(export.name, namespace)
        self._client.create(
            export.name,
            namespace,
            kind=kind,
            volume_name=target.name,
            ttl=export.spec.time_to_live,
            publish=export.spec.publish,
        )

    @staticmethod
    def _readiness_error(export: DataExport, publish: bool) -> SessionNotReadyError | None:
        location = f"{export.namespace}/{export.name}"
        if not export.is_ready:
            return SessionNotReadyError(f"DataExport {location} is not Ready")
        if publish:
            if not export.status.public_url:
                return SessionNotReadyError(f"DataExport {location} has empty PublicURL")
        elif not export.status.url:
            return SessionNotReadyError(f"DataExport {location} has no URL")
        return None

    def _check_cancelled(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            self.state = PollState.FAILED
            raise OperationCancelledError()

    async def _sleep(self) -> None:
        if self._cancel is None:
            await asyncio.sleep(self._interval)
            return
        try:
            await asyncio.wait_for(self._cancel.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return
        self._check_cancelled()
