"""Kubernetes and HTTP clients."""

from d8_data.clients.base import CRDDefinition, K8sClient
from d8_data.clients.http import Ownership, TrustedClient

__all__ = [
    "CRDDefinition",
    "K8sClient",
    "Ownership",
    "TrustedClient",
]
