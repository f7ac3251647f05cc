"""Configuration for d8-data.

Values are read from environment variables with the ``D8_DATA_`` prefix or
from a ``.env`` file, and can be overridden by command-line flags.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthMode(str, Enum):
    """How to authenticate against the Kubernetes API."""

    AUTO = "auto"
    KUBECONFIG = "kubeconfig"
    TOKEN = "token"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


DEFAULT_NAMESPACE = "d8-data-exporter"
DEFAULT_TTL = "2m"


class DataConfig(BaseSettings):
    """Configuration for the d8-data client."""

    model_config = SettingsConfigDict(
        env_prefix="D8_DATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Kubernetes access
    auth_mode: AuthMode = Field(
        default=AuthMode.AUTO,
        description="Authentication mode: auto, kubeconfig or token",
    )
    kubeconfig_path: str | None = Field(
        default=None,
        description="Path to kubeconfig file (default: $KUBECONFIG or ~/.kube/config)",
    )
    kubeconfig_context: str | None = Field(
        default=None,
        description="Kubeconfig context to use",
    )
    api_server: str | None = Field(
        default=None,
        description="Kubernetes API server URL (token auth mode)",
    )
    api_token: str | None = Field(
        default=None,
        description="Bearer token (token auth mode)",
    )
    insecure_skip_tls_verify: bool = Field(
        default=False,
        description="Skip TLS verification for the API server and export endpoints",
    )
    allow_anonymous: bool = Field(
        default=False,
        description="Allow export requests without any credentials",
    )

    # Export sessions
    namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        description="Namespace of DataExport resources",
    )
    ttl: str = Field(
        default=DEFAULT_TTL,
        description="Time to live for auto-created DataExport resources",
    )

    # Readiness polling
    poll_interval: float = Field(
        default=3.0,
        gt=0,
        description="Seconds between readiness checks",
    )
    poll_attempts: int = Field(
        default=60,
        ge=1,
        description="Maximum readiness checks before giving up",
    )

    # Transfer
    concurrency: int = Field(
        default=10,
        ge=1,
        le=256,
        description="Maximum simultaneous requests to the export server",
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Connect/read timeout for export server requests in seconds",
    )

    # Teardown
    teardown_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds to wait for an answer before auto-deleting a session",
    )

    log_level: LogLevel = Field(
        default=LogLevel.WARNING,
        description="Logging level",
    )

    @property
    def effective_kubeconfig_path(self) -> Path:
        """Kubeconfig path after applying $KUBECONFIG and the home default."""
        if self.kubeconfig_path:
            return Path(self.kubeconfig_path).expanduser()
        env_path = os.environ.get("KUBECONFIG")
        if env_path:
            # Only the first entry of a KUBECONFIG list is used.
            return Path(env_path.split(os.pathsep)[0]).expanduser()
        return Path.home() / ".kube" / "config"

    def validate_auth_config(self) -> list[str]:
        """Validate authentication settings.

        Returns:
            List of warnings for settings that are unusual but workable.

        Raises:
            ValueError: If the settings cannot work.
        """
        warnings: list[str] = []

        if self.auth_mode == AuthMode.TOKEN:
            if not self.api_server:
                raise ValueError("Token auth mode requires D8_DATA_API_SERVER to be set")
            if not self.api_token:
                raise ValueError("Token auth mode requires D8_DATA_API_TOKEN to be set")

        if self.auth_mode == AuthMode.KUBECONFIG and not self.effective_kubeconfig_path.exists():
            raise ValueError(f"Kubeconfig not found: {self.effective_kubeconfig_path}")

        if self.insecure_skip_tls_verify:
            warnings.append("TLS verification is disabled; connections are not authenticated")

        return warnings
