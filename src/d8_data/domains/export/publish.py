"""Decide whether export sessions must be published outside the cluster.

When ``--publish`` is not given, the in-cluster address of the API server is
probed. If the ``default/kubernetes`` Service read through that address is the
same object as the one read through the kubeconfig endpoint, the in-cluster
network is reachable and the session URL can be used directly.
"""

from __future__ import annotations

import logging
import socket
import ssl
from typing import TYPE_CHECKING

import urllib3
from kubernetes.client import ApiException  # type: ignore[import-untyped]

from d8_data.utils.errors import PublishDetectionError

if TYPE_CHECKING:
    from d8_data.clients.base import K8sClient

logger = logging.getLogger(__name__)

KUBE_SERVICE_NAMESPACE = "default"
KUBE_SERVICE_NAME = "kubernetes"
KUBE_SERVICE_SERVER_NAME = "kubernetes.default.svc"
PROBE_TIMEOUT = 3.0

AUTO_DETECT_HINT = "cannot auto-detect publish mode, specify --publish=true or --publish=false"

_NETWORK_ERRORS = (
    urllib3.exceptions.TimeoutError,
    urllib3.exceptions.NewConnectionError,
    urllib3.exceptions.ProtocolError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)
_TLS_ERRORS = (urllib3.exceptions.SSLError, ssl.SSLError)


def _root_cause(error: BaseException) -> BaseException:
    if isinstance(error, urllib3.exceptions.MaxRetryError) and error.reason is not None:
        return error.reason
    return error


def is_network_unreachable(error: BaseException) -> bool:
    """Whether a probe failure means there is no network path to the address."""
    error = _root_cause(error)
    if isinstance(error, _TLS_ERRORS):
        return False
    return isinstance(error, _NETWORK_ERRORS)


def is_probe_rejected(error: BaseException) -> bool:
    """Whether the probed server refused the TLS handshake or the credentials."""
    error = _root_cause(error)
    if isinstance(error, ApiException):
        return error.status in (401, 403)
    return isinstance(error, _TLS_ERRORS)


def _host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def detect_publish(k8s: K8sClient) -> bool:
    """Detect whether sessions must be published.

    Returns:
        False if the in-cluster API address reaches the same cluster, True if
        it is unreachable, rejects us or belongs to another cluster.

    Raises:
        PublishDetectionError: If the outcome is ambiguous.
    """
    try:
        first = k8s.core_v1.read_namespaced_service(KUBE_SERVICE_NAME, KUBE_SERVICE_NAMESPACE)
    except (ApiException, urllib3.exceptions.HTTPError, OSError) as e:
        logger.debug(f"Publish autodetect: cannot read Service via kubeconfig: {e}")
        raise PublishDetectionError(AUTO_DETECT_HINT) from e

    cluster_ip = first.spec.cluster_ip if first.spec else None
    if not cluster_ip or cluster_ip == "None":
        raise PublishDetectionError(AUTO_DETECT_HINT)

    target = f"https://{_host_port(cluster_ip, 443)}"
    probe = k8s.probe_core_v1(target, KUBE_SERVICE_SERVER_NAME)
    try:
        second = probe.read_namespaced_service(
            KUBE_SERVICE_NAME, KUBE_SERVICE_NAMESPACE, _request_timeout=PROBE_TIMEOUT
        )
    except (ApiException, urllib3.exceptions.HTTPError, OSError, ValueError) as e:
        if is_network_unreachable(e):
            logger.info(
                "Publish autodetect: internal endpoint is unreachable, selecting publish=true"
            )
            return True
        if is_probe_rejected(e):
            logger.info("Publish autodetect: internal endpoint rejected, selecting publish=true")
            return True
        logger.debug(f"Publish autodetect: ambiguous probe failure: {e}")
        raise PublishDetectionError(AUTO_DETECT_HINT) from e
    finally:
        probe.api_client.close()

    if first.metadata.uid != second.metadata.uid:
        logger.info(
            "Publish autodetect: UID mismatch between external and internal endpoints, "
            "selecting publish=true"
        )
        return True

    logger.info("Publish autodetect: internal endpoint is reachable, selecting publish=false")
    return False


def resolve_publish(publish: bool | None, k8s: K8sClient) -> bool:
    """Return the explicit publish value, or detect it when not given."""
    if publish is not None:
        logger.info(f"Using explicit publish mode: {publish}")
        return publish
    logger.info("Auto-detecting publish mode")
    return detect_publish(k8s)
