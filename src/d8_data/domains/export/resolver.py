"""Map command-line volume references to export session names."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from d8_data.domains.export.models import VolumeKind, VolumeRef
from d8_data.utils.errors import ArgumentError, ResourceConflictError

if TYPE_CHECKING:
    from d8_data.domains.export.client import DataExportClient

logger = logging.getLogger(__name__)

SESSION_NAME_PREFIX = "de"

# Accepted kind prefixes, matched case-insensitively
KIND_ALIASES: dict[str, VolumeKind] = {
    "pvc": VolumeKind.PERSISTENT_VOLUME_CLAIM,
    "persistentvolumeclaim": VolumeKind.PERSISTENT_VOLUME_CLAIM,
    "vs": VolumeKind.VOLUME_SNAPSHOT,
    "volumesnapshot": VolumeKind.VOLUME_SNAPSHOT,
    "vd": VolumeKind.VIRTUAL_DISK,
    "virtualdisk": VolumeKind.VIRTUAL_DISK,
    "vds": VolumeKind.VIRTUAL_DISK_SNAPSHOT,
    "virtualdisksnapshot": VolumeKind.VIRTUAL_DISK_SNAPSHOT,
}


@dataclass(frozen=True)
class ResolvedName:
    """Outcome of resolving a command-line token."""

    name: str
    volume_ref: VolumeRef | None = None

    @property
    def needs_create(self) -> bool:
        """Whether the token named a volume whose session must be created."""
        return self.volume_ref is not None


def parse_volume_ref(value: str) -> VolumeRef:
    """Parse ``<kind>/<name>``, e.g. ``pvc/my-data`` or ``VirtualDisk/disk-1``.

    Raises:
        ArgumentError: If the value is malformed or the kind is unknown.
    """
    kind, sep, name = value.partition("/")
    if not sep or not kind or not name or "/" in name:
        raise ArgumentError(f"invalid volume reference '{value}', expected <kind>/<name>")
    volume_kind = KIND_ALIASES.get(kind.lower())
    if volume_kind is None:
        raise ArgumentError(
            f"invalid volume kind '{kind}', expected one of: {', '.join(KIND_ALIASES)}"
        )
    return VolumeRef(kind=volume_kind, name=name)


def session_name_for(volume: VolumeRef) -> str:
    """Session name auto-created for a volume, e.g. ``de-pvc-my-data``."""
    return f"{SESSION_NAME_PREFIX}-{volume.kind.short_name}-{volume.name}"


def resolve_session_name(token: str) -> ResolvedName:
    """Resolve a token naming either a volume or an existing session.

    ``pvc/data`` resolves to ``de-pvc-data`` and needs to be created; any
    token without a known kind prefix is taken as a session name unchanged.

    Raises:
        ArgumentError: If a kind prefix is followed by an empty name.
    """
    kind, sep, name = token.partition("/")
    volume_kind = KIND_ALIASES.get(kind.lower()) if sep else None
    if volume_kind is None:
        return ResolvedName(name=token)
    if not name:
        raise ArgumentError(f"invalid volume reference '{token}': empty volume name")

    volume = VolumeRef(kind=volume_kind, name=name)
    return ResolvedName(name=session_name_for(volume), volume_ref=volume)


class SessionResolver:
    """Resolves tokens to sessions, creating sessions for volume references."""

    def __init__(self, client: DataExportClient) -> None:
        self._client = client

    async def resolve(
        self,
        token: str,
        namespace: str,
        ttl: str | None = None,
        publish: bool = False,
    ) -> tuple[str, bool]:
        """Return the session name and whether it was auto-created.

        Raises:
            ArgumentError: If the token is malformed.
            ResourceConflictError: If another session already exports the volume.
        """
        resolved = resolve_session_name(token)
        volume = resolved.volume_ref
        if volume is None:
            return resolved.name, False

        sessions = await asyncio.to_thread(self._client.list, namespace)
        for session in sessions:
            if session.name != resolved.name and session.targets(volume):
                raise ResourceConflictError(
                    f"{volume.kind.value} {namespace}/{volume.name} is already exported by "
                    f"DataExport {session.name}; delete it first "
                    f"(d8-data delete {session.name} -n {namespace})"
                )

        await asyncio.to_thread(
            self._client.create,
            resolved.name,
            namespace,
            volume.kind,
            volume.name,
            ttl,
            publish,
        )
        logger.info(f"DataExport {namespace}/{resolved.name} requested for {volume}")
        return resolved.name, True
