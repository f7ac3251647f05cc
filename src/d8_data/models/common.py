"""Common Pydantic models shared across Kubernetes resources."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResourceMetadata(BaseModel):
    """Common metadata for Kubernetes resources."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Resource name")
    namespace: str | None = Field(None, description="Resource namespace")
    uid: str | None = Field(None, description="Kubernetes UID")
    creation_timestamp: datetime | None = Field(None, description="When the resource was created")
    labels: dict[str, str] = Field(default_factory=dict, description="Resource labels")
    annotations: dict[str, str] = Field(default_factory=dict, description="Resource annotations")

    @classmethod
    def from_dict(cls, metadata: dict[str, Any]) -> "ResourceMetadata":
        """Create from a serialized ``metadata`` mapping."""
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or {},
            annotations=metadata.get("annotations") or {},
        )


class Condition(BaseModel):
    """Kubernetes-style condition."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Condition type")
    status: str = Field(..., description="Condition status (True, False, Unknown)")
    reason: str | None = Field(None, description="Machine-readable reason")
    message: str | None = Field(None, description="Human-readable message")
    last_transition_time: datetime | None = Field(None, description="Last transition time")

    @property
    def is_true(self) -> bool:
        """Check if condition status is True."""
        return self.status == "True"

    @classmethod
    def from_dict(cls, condition: dict[str, Any]) -> "Condition":
        """Create from a serialized condition mapping."""
        return cls(
            type=condition["type"],
            status=condition.get("status", "Unknown"),
            reason=condition.get("reason") or None,
            message=condition.get("message") or None,
            last_transition_time=condition.get("lastTransitionTime"),
        )
