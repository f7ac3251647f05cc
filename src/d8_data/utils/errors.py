"""Error types for d8-data.

Every error the tool reports to the operator derives from D8DataError so the
entry point can turn it into a message on stderr and a non-zero exit code.
"""

from __future__ import annotations


class D8DataError(Exception):
    """Base error for all d8-data failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ArgumentError(D8DataError):
    """Malformed command-line token or path. Raised before any network activity."""

    pass


class ConfigurationError(D8DataError):
    """Invalid or incomplete client configuration."""

    pass


class AuthenticationError(D8DataError):
    """No usable credentials for a request."""

    pass


class NotFoundError(D8DataError):
    """Resource not found."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        if namespace:
            message = f"{kind} '{name}' not found in namespace '{namespace}'"
        else:
            message = f"{kind} '{name}' not found"
        super().__init__(message)


class ResourceExistsError(D8DataError):
    """Resource already exists."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} '{location}' already exists")


class ResourceConflictError(D8DataError):
    """Several sessions compete for the same volume."""

    pass


class SessionNotReadyError(D8DataError):
    """Export session is not usable yet (not ready, expired or missing URL)."""

    pass


class TransportError(D8DataError):
    """Data endpoint cannot be derived or reached."""

    pass


class UnsupportedVolumeModeError(TransportError):
    """Session reports a volume mode other than Filesystem or Block."""

    def __init__(self, volume_mode: str) -> None:
        self.volume_mode = volume_mode
        super().__init__(f"invalid volume mode: '{volume_mode}'")


class HTTPStatusError(TransportError):
    """Export server answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        status = f"{status_code} {reason}".strip()
        if body:
            message = f'Backend response "{status}" Msg: {body}'
        else:
            message = f'Backend response "{status}"'
        super().__init__(message)


class TransferError(D8DataError):
    """At least one node of a transfer failed."""

    pass


class PublishDetectionError(D8DataError):
    """Publish mode could not be detected automatically."""

    pass


class OperationCancelledError(D8DataError):
    """The operation was cancelled by the operator."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__(message)
