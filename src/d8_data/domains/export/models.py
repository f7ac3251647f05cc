"""Pydantic models for DataExport resources and export server payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from d8_data.config import DEFAULT_TTL
from d8_data.domains.export.crds import DataExportCRDs
from d8_data.models.common import Condition, ResourceMetadata

# Condition types reported by the exporter
CONDITION_READY = "Ready"
CONDITION_EXPIRED = "Expired"


class VolumeKind(str, Enum):
    """Kinds of volumes that can be exported."""

    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    VOLUME_SNAPSHOT = "VolumeSnapshot"
    VIRTUAL_DISK = "VirtualDisk"
    VIRTUAL_DISK_SNAPSHOT = "VirtualDiskSnapshot"

    @property
    def short_name(self) -> str:
        """Short alias used on the command line and in session names."""
        return _SHORT_NAMES[self]


_SHORT_NAMES = {
    VolumeKind.PERSISTENT_VOLUME_CLAIM: "pvc",
    VolumeKind.VOLUME_SNAPSHOT: "vs",
    VolumeKind.VIRTUAL_DISK: "vd",
    VolumeKind.VIRTUAL_DISK_SNAPSHOT: "vds",
}


class VolumeMode(str, Enum):
    """How the export server exposes a volume."""

    FILESYSTEM = "Filesystem"
    BLOCK = "Block"


class VolumeRef(BaseModel):
    """A volume named on the command line, e.g. ``pvc/my-data``."""

    model_config = ConfigDict(frozen=True)

    kind: VolumeKind = Field(..., description="Volume kind")
    name: str = Field(..., description="Volume name")

    def __str__(self) -> str:
        return f"{self.kind.short_name}/{self.name}"


class TargetRef(BaseModel):
    """Reference to the exported volume."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Volume kind")
    name: str = Field(..., description="Volume name")


class DataExportSpec(BaseModel):
    """Desired state of an export session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    time_to_live: str = Field(
        DEFAULT_TTL,
        alias="ttl",
        description="How long the session lives without access (e.g., '2m')",
    )
    publish: bool = Field(False, description="Expose the session through a public URL")
    target_ref: TargetRef = Field(..., alias="targetRef", description="Exported volume")


class DataExportStatus(BaseModel):
    """Observed state of an export session, written by the exporter."""

    model_config = ConfigDict(frozen=True)

    url: str | None = Field(None, description="In-cluster URL of the export server")
    public_url: str | None = Field(None, description="Public URL of the export server")
    ca: str | None = Field(None, description="Base64-encoded PEM CA of the export server")
    volume_mode: str | None = Field(None, description="Filesystem or Block")
    access_timestamp: datetime | None = Field(None, description="Last data access")
    conditions: list[Condition] = Field(default_factory=list, description="Status conditions")

    @classmethod
    def from_dict(cls, status: dict[str, Any]) -> DataExportStatus:
        """Create from a serialized ``status`` mapping."""
        return cls(
            url=status.get("url") or None,
            public_url=status.get("publicURL") or None,
            ca=status.get("ca") or None,
            volume_mode=status.get("volumeMode") or None,
            access_timestamp=status.get("accessTimestamp"),
            conditions=[Condition.from_dict(c) for c in status.get("conditions") or []],
        )


class DataExport(BaseModel):
    """DataExport resource representation."""

    model_config = ConfigDict(frozen=True)

    metadata: ResourceMetadata
    spec: DataExportSpec
    status: DataExportStatus = Field(default_factory=DataExportStatus)

    @property
    def name(self) -> str:
        """Resource name."""
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        """Resource namespace."""
        return self.metadata.namespace

    def condition(self, condition_type: str) -> Condition | None:
        """Find a status condition by type."""
        for condition in self.status.conditions:
            if condition.type == condition_type:
                return condition
        return None

    @property
    def ready_condition(self) -> Condition | None:
        """The Ready condition, if reported."""
        return self.condition(CONDITION_READY)

    @property
    def is_expired(self) -> bool:
        """Whether the exporter marked the session as expired."""
        expired = self.condition(CONDITION_EXPIRED)
        return expired is not None and expired.is_true

    @property
    def is_ready(self) -> bool:
        """Ready=True, or no Ready condition reported at all."""
        ready = self.ready_condition
        return ready is None or ready.is_true

    def targets(self, volume: VolumeRef) -> bool:
        """Whether this session exports the given volume."""
        ref = self.spec.target_ref
        return ref.kind == volume.kind.value and ref.name == volume.name

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> DataExport:
        """Create from a serialized DataExport resource."""
        spec = resource.get("spec") or {}
        target = spec.get("targetRef") or {}
        return cls(
            metadata=ResourceMetadata.from_dict(resource.get("metadata") or {}),
            spec=DataExportSpec(
                time_to_live=spec.get("ttl") or DEFAULT_TTL,
                publish=bool(spec.get("publish", False)),
                target_ref=TargetRef(kind=target.get("kind", ""), name=target.get("name", "")),
            ),
            status=DataExportStatus.from_dict(resource.get("status") or {}),
        )

    def to_body(self) -> dict[str, Any]:
        """Build the request body for creating this resource."""
        crd = DataExportCRDs.DATA_EXPORT
        return {
            "apiVersion": crd.api_version,
            "kind": crd.kind,
            "metadata": {
                "name": self.metadata.name,
                "namespace": self.metadata.namespace,
            },
            "spec": self.spec.model_dump(by_alias=True),
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize for display, using the resource's field names."""
        crd = DataExportCRDs.DATA_EXPORT
        status: dict[str, Any] = {}
        if self.status.url:
            status["url"] = self.status.url
        if self.status.public_url:
            status["publicURL"] = self.status.public_url
        if self.status.volume_mode:
            status["volumeMode"] = self.status.volume_mode
        if self.status.access_timestamp:
            status["accessTimestamp"] = self.status.access_timestamp.isoformat()
        if self.status.conditions:
            status["conditions"] = [
                {
                    "type": c.type,
                    "status": c.status,
                    **({"reason": c.reason} if c.reason else {}),
                    **({"message": c.message} if c.message else {}),
                }
                for c in self.status.conditions
            ]
        return {
            "apiVersion": crd.api_version,
            "kind": crd.kind,
            "metadata": {"name": self.metadata.name, "namespace": self.metadata.namespace},
            "spec": self.spec.model_dump(by_alias=True),
            "status": status,
        }


class DirItem(BaseModel):
    """Entry of a directory listing."""

    name: str = Field(..., description="Entry name, without any path")
    type: str = Field("file", description="'file' or 'dir'")

    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory. Unknown types count as files."""
        return self.type == "dir"


class DirListing(BaseModel):
    """Directory listing returned by the export server."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field("", alias="apiVersion", description="Listing format version")
    items: list[DirItem] = Field(default_factory=list, description="Directory entries")


@dataclass(frozen=True)
class TransferTask:
    """One node of a recursive transfer.

    ``remote_path`` is rooted at ``/``; a trailing slash marks a directory.
    ``local_path`` of None means standard output.
    """

    remote_path: str
    local_path: str | None
    depth: int = 0

    @property
    def is_dir(self) -> bool:
        return self.remote_path.endswith("/")
