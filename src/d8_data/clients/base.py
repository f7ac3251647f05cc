"""Kubernetes client wrapper used by all domain clients."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import urllib3
from kubernetes import client, config  # type: ignore[import-untyped]
from kubernetes.client import ApiException  # type: ignore[import-untyped]
from kubernetes.config.config_exception import ConfigException  # type: ignore[import-untyped]
from kubernetes.dynamic import DynamicClient  # type: ignore[import-untyped]
from kubernetes.dynamic.exceptions import ResourceNotFoundError  # type: ignore[import-untyped]

from d8_data.clients.http import TrustedClient
from d8_data.config import AuthMode, DataConfig
from d8_data.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    D8DataError,
    NotFoundError,
    ResourceExistsError,
)

if TYPE_CHECKING:
    from kubernetes.dynamic.resource import Resource  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_TOKEN_PATH = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")


@dataclass(frozen=True)
class CRDDefinition:
    """Identifies a custom resource kind served by the API server."""

    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        """Group/version string used in manifests."""
        return f"{self.group}/{self.version}"


def _is_running_in_cluster() -> bool:
    """Check if we're running inside a Kubernetes cluster."""
    return SERVICE_ACCOUNT_TOKEN_PATH.exists()


class K8sClient:
    """Thin wrapper over the Kubernetes dynamic client.

    Resources are returned as plain dictionaries and API failures are
    translated into d8-data errors, so domain clients never see
    ``ApiException``.
    """

    def __init__(self, config: DataConfig) -> None:
        self._config = config
        self._configuration: client.Configuration | None = None
        self._api_client: client.ApiClient | None = None
        self._dynamic: DynamicClient | None = None
        self._core_v1: client.CoreV1Api | None = None

    @property
    def configuration(self) -> client.Configuration:
        """Loaded client configuration."""
        if self._configuration is None:
            self._configuration = self._load_configuration()
        return self._configuration

    @property
    def api_client(self) -> client.ApiClient:
        """API client shared by the dynamic and core clients."""
        if self._api_client is None:
            self._api_client = client.ApiClient(self.configuration)
            logger.debug(f"Connected to Kubernetes API at {self.configuration.host}")
        return self._api_client

    @property
    def dynamic(self) -> DynamicClient:
        """Dynamic client for custom resources."""
        if self._dynamic is None:
            self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    @property
    def core_v1(self) -> client.CoreV1Api:
        """Core v1 API."""
        if self._core_v1 is None:
            self._core_v1 = client.CoreV1Api(self.api_client)
        return self._core_v1

    def _load_configuration(self) -> client.Configuration:
        configuration = client.Configuration()
        auth_mode = self._config.auth_mode

        try:
            if auth_mode == AuthMode.TOKEN:
                if not self._config.api_server or not self._config.api_token:
                    raise ConfigurationError("Token auth mode requires an API server and a token")
                configuration.host = self._config.api_server
                configuration.api_key = {"authorization": self._config.api_token}
                configuration.api_key_prefix = {"authorization": "Bearer"}
                logger.debug(f"Using token auth against {configuration.host}")
            elif auth_mode == AuthMode.AUTO and _is_running_in_cluster():
                config.load_incluster_config(client_configuration=configuration)
                logger.debug("Using in-cluster service account")
            else:
                kubeconfig = self._config.effective_kubeconfig_path
                config.load_kube_config(
                    config_file=str(kubeconfig),
                    context=self._config.kubeconfig_context,
                    client_configuration=configuration,
                )
                logger.debug(f"Loaded kubeconfig {kubeconfig}")
        except ConfigException as e:
            raise ConfigurationError(f"Failed to load Kubernetes configuration: {e}") from e

        if self._config.insecure_skip_tls_verify:
            configuration.verify_ssl = False

        return configuration

    def probe_core_v1(self, host: str, server_name: str) -> client.CoreV1Api:
        """Core v1 API bound to another endpoint with the same credentials.

        The loaded configuration is copied, never modified.

        Args:
            host: API server URL to talk to.
            server_name: Name to validate the server certificate against.
        """
        probe = copy.deepcopy(self.configuration)
        probe.host = host
        probe.tls_server_name = server_name
        probe.retries = False
        return client.CoreV1Api(client.ApiClient(probe))

    def http_client(self, allow_anonymous: bool = False, timeout: float = 30.0) -> TrustedClient:
        """Build an HTTP client carrying the same credentials as this client.

        Args:
            allow_anonymous: Permit requests without any credentials.
            timeout: Request timeout in seconds.
        """
        configuration = self.configuration
        authorization = configuration.get_api_key_with_prefix("authorization")
        if authorization and not authorization.lower().startswith("bearer "):
            authorization = f"Bearer {authorization}"

        return TrustedClient(
            authorization=authorization or None,
            cert_file=configuration.cert_file or None,
            key_file=configuration.key_file or None,
            cluster_ca_file=configuration.ssl_ca_cert or None,
            insecure=not configuration.verify_ssl,
            allow_anonymous=allow_anonymous,
            timeout=timeout,
        )

    # -------------------------------------------------------------------------
    # Custom resource operations
    # -------------------------------------------------------------------------

    def _resource(self, crd: CRDDefinition) -> Resource:
        try:
            return self.dynamic.resources.get(api_version=crd.api_version, kind=crd.kind)
        except ResourceNotFoundError as e:
            raise ConfigurationError(
                f"{crd.kind} ({crd.api_version}) is not served by this cluster"
            ) from e
        except ApiException as e:
            raise self._translate(e, crd) from e
        except urllib3.exceptions.HTTPError as e:
            raise D8DataError(f"Kubernetes API unreachable: {e}") from e

    def _translate(
        self,
        error: ApiException,
        crd: CRDDefinition,
        name: str | None = None,
        namespace: str | None = None,
    ) -> D8DataError:
        if error.status == 404 and name:
            return NotFoundError(crd.kind, name, namespace)
        if error.status == 409 and name:
            return ResourceExistsError(crd.kind, name, namespace)
        if error.status in (401, 403):
            return AuthenticationError(f"Access to {crd.kind} denied: {error.reason}")
        return D8DataError(f"Kubernetes API error for {crd.kind}: {error.status} {error.reason}")

    def get(self, crd: CRDDefinition, name: str, namespace: str | None = None) -> dict[str, Any]:
        """Get a custom resource by name.

        Raises:
            NotFoundError: If the resource does not exist.
        """
        resource = self._resource(crd)
        try:
            obj = resource.get(name=name, namespace=namespace)
        except ApiException as e:
            raise self._translate(e, crd, name, namespace) from e
        except urllib3.exceptions.HTTPError as e:
            raise D8DataError(f"Kubernetes API unreachable: {e}") from e
        return obj.to_dict()

    def create(
        self, crd: CRDDefinition, body: dict[str, Any], namespace: str | None = None
    ) -> dict[str, Any]:
        """Create a custom resource.

        Raises:
            ResourceExistsError: If a resource with the same name exists.
        """
        resource = self._resource(crd)
        name = body.get("metadata", {}).get("name")
        try:
            obj = resource.create(body=body, namespace=namespace)
        except ApiException as e:
            raise self._translate(e, crd, name, namespace) from e
        except urllib3.exceptions.HTTPError as e:
            raise D8DataError(f"Kubernetes API unreachable: {e}") from e
        return obj.to_dict()

    def delete(self, crd: CRDDefinition, name: str, namespace: str | None = None) -> None:
        """Delete a custom resource.

        Raises:
            NotFoundError: If the resource does not exist.
        """
        resource = self._resource(crd)
        try:
            resource.delete(name=name, namespace=namespace)
        except ApiException as e:
            raise self._translate(e, crd, name, namespace) from e
        except urllib3.exceptions.HTTPError as e:
            raise D8DataError(f"Kubernetes API unreachable: {e}") from e

    def list_resources(
        self, crd: CRDDefinition, namespace: str | None = None
    ) -> list[dict[str, Any]]:
        """List custom resources, across all namespaces when namespace is None."""
        resource = self._resource(crd)
        try:
            result = resource.get(namespace=namespace)
        except ApiException as e:
            raise self._translate(e, crd) from e
        except urllib3.exceptions.HTTPError as e:
            raise D8DataError(f"Kubernetes API unreachable: {e}") from e
        items: list[dict[str, Any]] = result.to_dict().get("items") or []
        return items
