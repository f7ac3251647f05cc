"""Utility functions and helpers for d8-data."""

from d8_data.utils.errors import (
    ArgumentError,
    AuthenticationError,
    ConfigurationError,
    D8DataError,
    HTTPStatusError,
    NotFoundError,
    OperationCancelledError,
    PublishDetectionError,
    ResourceConflictError,
    ResourceExistsError,
    SessionNotReadyError,
    TransferError,
    TransportError,
    UnsupportedVolumeModeError,
)
from d8_data.utils.quantity import format_binary_quantity
from d8_data.utils.urls import join_url

__all__ = [
    # Errors
    "D8DataError",
    "ArgumentError",
    "AuthenticationError",
    "ConfigurationError",
    "NotFoundError",
    "ResourceExistsError",
    "ResourceConflictError",
    "SessionNotReadyError",
    "TransportError",
    "UnsupportedVolumeModeError",
    "HTTPStatusError",
    "TransferError",
    "PublishDetectionError",
    "OperationCancelledError",
    # Formatting
    "format_binary_quantity",
    "join_url",
]
