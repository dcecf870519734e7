"""Kubernetes client wrapper for secret operations."""
import base64
import logging
from typing import Dict, List, Optional

from kubernetes import client as k8s
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from .errors import (
    ClusterError,
    ClusterAuthError,
    ClusterPermissionError,
    ClusterNotFoundError,
    ClusterOtherError,
)
from .models import FieldMap

logger = logging.getLogger(__name__)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "ksecret"
MANAGED_LABELS = {MANAGED_BY_LABEL: MANAGED_BY_VALUE}


def translate_k8s_error(exc: Exception) -> ClusterError:
    """
    Map a Kubernetes client exception to a ksecret error with guidance text.

    Args:
        exc: ApiException, kubeconfig ConfigException or urllib3 transport error

    Returns:
        ClusterError subclass to raise in its place
    """
    if isinstance(exc, ApiException):
        if exc.status == 401:
            return ClusterAuthError(
                "Kubernetes Authentication failed.\n"
                "Check your kubeconfig credentials."
            )
        if exc.status == 403:
            return ClusterPermissionError(
                "Kubernetes Permission denied.\n"
                "You don't have permission to perform this action in the namespace."
            )
        if exc.status == 404:
            return ClusterNotFoundError("Kubernetes Resource not found.")
        return ClusterOtherError(f"Kubernetes API Error: {exc.reason}")
    if isinstance(exc, ConfigException):
        return ClusterOtherError(
            f"Kubernetes configuration error: {exc}\n"
            f"Check your kubeconfig or pass --context."
        )
    if isinstance(exc, HTTPError):
        return ClusterOtherError(
            f"Kubernetes API unreachable: {exc}\n"
            f"Check that the cluster is running and your kubeconfig points at it."
        )
    return ClusterOtherError(f"Kubernetes Error: {exc}")


_TRANSLATED = (ApiException, ConfigException, HTTPError)


def _encode_data(fields: FieldMap) -> Dict[str, str]:
    return {key: base64.b64encode(value).decode("ascii") for key, value in fields.items()}


class KubeClient:
    """Wrapper around the Kubernetes CoreV1 API."""

    def __init__(self, context: Optional[str] = None):
        self.context = context
        self._api = None

    def _build_api_client(self) -> k8s.ApiClient:
        if self.context:
            return kube_config.new_client_from_config(context=self.context)
        try:
            return kube_config.new_client_from_config()
        except ConfigException:
            logger.debug("No kubeconfig found, trying in-cluster configuration")
            configuration = k8s.Configuration()
            kube_config.load_incluster_config(client_configuration=configuration)
            return k8s.ApiClient(configuration)

    @property
    def api(self) -> k8s.CoreV1Api:
        """Lazy-initialize API client."""
        if self._api is None:
            try:
                self._api = k8s.CoreV1Api(self._build_api_client())
            except _TRANSLATED as e:
                raise translate_k8s_error(e) from e
            logger.debug(f"Kubernetes client ready (context: {self.context or 'current'})")
        return self._api

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self.api.read_namespace(name=namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise translate_k8s_error(e) from e
        except _TRANSLATED as e:
            raise translate_k8s_error(e) from e
        return True

    def delete_secret(self, namespace: str, name: str) -> bool:
        """
        Delete a secret.

        Returns:
            True if deleted, False if it did not exist
        """
        try:
            self.api.delete_namespaced_secret(name=name, namespace=namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise translate_k8s_error(e) from e
        except _TRANSLATED as e:
            raise translate_k8s_error(e) from e
        return True

    def create_secret(self, namespace: str, name: str, labels: Dict[str, str], fields: FieldMap) -> None:
        body = k8s.V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=k8s.V1ObjectMeta(name=name, namespace=namespace, labels=dict(labels)),
            data=_encode_data(fields),
            type="Opaque",
        )
        try:
            self.api.create_namespaced_secret(namespace=namespace, body=body)
        except _TRANSLATED as e:
            raise translate_k8s_error(e) from e

    def apply_secret(self, namespace: str, name: str, fields: FieldMap) -> None:
        """
        Replace a secret with one holding exactly the given fields.

        The old secret is deleted before the new one is created, so no stale
        fields survive. The secret is briefly absent between the two calls.
        """
        if self.delete_secret(namespace, name):
            logger.debug(f"Deleted existing secret {namespace}/{name}")
        self.create_secret(namespace, name, MANAGED_LABELS, fields)
        logger.info(f"Applied secret {namespace}/{name}")

    def list_managed_secrets(self, namespace: str) -> List[str]:
        """Names of secrets in the namespace carrying the ksecret managed-by label."""
        try:
            secrets = self.api.list_namespaced_secret(
                namespace=namespace,
                label_selector=f"{MANAGED_BY_LABEL}={MANAGED_BY_VALUE}",
            )
        except _TRANSLATED as e:
            raise translate_k8s_error(e) from e
        return [item.metadata.name for item in secrets.items]
