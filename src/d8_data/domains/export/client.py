"""DataExport resource lifecycle operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from d8_data.config import DEFAULT_TTL
from d8_data.domains.export.crds import DataExportCRDs
from d8_data.domains.export.models import (
    DataExport,
    DataExportSpec,
    TargetRef,
    VolumeKind,
)
from d8_data.models.common import ResourceMetadata
from d8_data.utils.errors import D8DataError, NotFoundError, ResourceExistsError

if TYPE_CHECKING:
    from d8_data.clients.base import K8sClient

logger = logging.getLogger(__name__)


class DataExportClient:
    """Client for DataExport create/get/delete/list.

    No call is retried; retry policy belongs to the readiness poller.
    """

    def __init__(self, k8s: K8sClient) -> None:
        self._k8s = k8s

    def create(
        self,
        name: str,
        namespace: str,
        kind: VolumeKind,
        volume_name: str,
        ttl: str | None = None,
        publish: bool = False,
    ) -> None:
        """Create an export session. An existing session of the same name is kept.

        Raises:
            D8DataError: If the store rejects the request.
        """
        export = DataExport(
            metadata=ResourceMetadata(name=name, namespace=namespace),
            spec=DataExportSpec(
                time_to_live=ttl or DEFAULT_TTL,
                publish=publish,
                target_ref=TargetRef(kind=kind.value, name=volume_name),
            ),
        )

        try:
            self._k8s.create(DataExportCRDs.DATA_EXPORT, export.to_body(), namespace=namespace)
        except ResourceExistsError:
            logger.debug(f"DataExport {namespace}/{name} already exists")
            return
        except D8DataError as e:
            raise D8DataError(f"DataExport create error: {e.message}") from e

        logger.info(f"DataExport {namespace}/{name} created for {kind.value}/{volume_name}")

    def get(self, name: str, namespace: str) -> DataExport:
        """Get an export session.

        Raises:
            NotFoundError: If the session does not exist.
        """
        resource = self._k8s.get(DataExportCRDs.DATA_EXPORT, name, namespace=namespace)
        return DataExport.from_resource(resource)

    def delete(self, name: str, namespace: str) -> None:
        """Delete an export session. A missing session is not an error."""
        try:
            self._k8s.delete(DataExportCRDs.DATA_EXPORT, name, namespace=namespace)
        except NotFoundError:
            logger.debug(f"DataExport {namespace}/{name} already gone")
            return
        logger.info(f"DataExport {namespace}/{name} deleted")

    def list(self, namespace: str | None = None) -> list[DataExport]:
        """List export sessions, across all namespaces when namespace is None."""
        resources = self._k8s.list_resources(DataExportCRDs.DATA_EXPORT, namespace=namespace)
        return [DataExport.from_resource(r) for r in resources]
