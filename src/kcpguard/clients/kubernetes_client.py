"""Kubernetes client for management and target cluster operations."""

import base64
from typing import Any

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Node, V1Pod

from kcpguard.core.exceptions import KubernetesError, KubernetesNotFoundError
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)


class KubernetesClient:
    """Kubernetes client wrapper bound to a single cluster."""

    def __init__(
        self,
        kubeconfig_path: str | None = None,
        context: str | None = None,
        api_client: client.ApiClient | None = None,
    ):
        """Initialize Kubernetes client.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
            api_client: Preconfigured API client; skips kubeconfig loading
        """
        try:
            if api_client is None:
                api_client = self._load_api_client(kubeconfig_path, context)

            self.api_client = api_client
            self.core_v1 = client.CoreV1Api(api_client)
            self.custom_objects = client.CustomObjectsApi(api_client)

            logger.debug("k8s_client_initialized", context=context)

        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise KubernetesError("Failed to initialize Kubernetes client") from e

    @staticmethod
    def _load_api_client(kubeconfig_path: str | None, context: str | None) -> client.ApiClient:
        if kubeconfig_path:
            return config.new_client_from_config(config_file=kubeconfig_path, context=context)

        # Try default kubeconfig location, then in-cluster service account
        try:
            return config.new_client_from_config(context=context)
        except config.ConfigException:
            configuration = client.Configuration()
            config.load_incluster_config(client_configuration=configuration)
            return client.ApiClient(configuration)

    def get_nodes(self, label_selector: str | None = None) -> list[V1Node]:
        """Get nodes in the cluster.

        Args:
            label_selector: Label selector (e.g., "node-role.kubernetes.io/master=")

        Returns:
            List of V1Node objects

        Raises:
            KubernetesError: If nodes cannot be retrieved
        """
        try:
            logger.debug("getting_nodes", selector=label_selector)
            response = self.core_v1.list_node(label_selector=label_selector)
            nodes = response.items

            logger.info("nodes_retrieved", selector=label_selector, count=len(nodes))
            return nodes

        except ApiException as e:
            logger.error("get_nodes_failed", status=e.status, reason=e.reason)
            raise KubernetesError(f"Failed to get nodes: {e.reason}") from e

    def get_pod(self, name: str, namespace: str) -> V1Pod:
        """Get a pod.

        Args:
            name: Pod name
            namespace: Namespace

        Returns:
            V1Pod object

        Raises:
            KubernetesNotFoundError: If the pod does not exist
            KubernetesError: If the pod cannot be retrieved
        """
        try:
            logger.debug("getting_pod", name=name, namespace=namespace)
            return self.core_v1.read_namespaced_pod(name=name, namespace=namespace)

        except ApiException as e:
            if e.status == 404:
                logger.warning("pod_not_found", name=name, namespace=namespace)
                raise KubernetesNotFoundError(
                    f'pods "{name}" not found in namespace {namespace}'
                ) from e

            logger.error(
                "get_pod_failed",
                name=name,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to get pod {namespace}/{name}: {e.reason}") from e

    def get_secret_data(self, name: str, namespace: str) -> dict[str, bytes]:
        """Get the decoded data of a secret.

        Args:
            name: Secret name
            namespace: Namespace

        Returns:
            Mapping of data key to decoded bytes

        Raises:
            KubernetesNotFoundError: If the secret does not exist
            KubernetesError: If the secret cannot be retrieved or decoded
        """
        try:
            logger.debug("getting_secret", name=name, namespace=namespace)
            secret = self.core_v1.read_namespaced_secret(name=name, namespace=namespace)

        except ApiException as e:
            if e.status == 404:
                logger.warning("secret_not_found", name=name, namespace=namespace)
                raise KubernetesNotFoundError(
                    f'secrets "{name}" not found in namespace {namespace}'
                ) from e

            logger.error(
                "get_secret_failed",
                name=name,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to get secret {namespace}/{name}: {e.reason}") from e

        try:
            # Secret data is base64 encoded on the wire
            return {key: base64.b64decode(value) for key, value in (secret.data or {}).items()}
        except (ValueError, TypeError) as e:
            raise KubernetesError(f"Failed to decode secret {namespace}/{name}: {e}") from e

    def list_custom_objects(
        self,
        group: str,
        version: str,
        plural: str,
        namespace: str,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List namespaced custom objects.

        Args:
            group: API group (e.g., "cluster.x-k8s.io")
            version: API version (e.g., "v1alpha3")
            plural: Resource plural (e.g., "machines")
            namespace: Namespace
            label_selector: Label selector

        Returns:
            List of raw custom objects

        Raises:
            KubernetesError: If the objects cannot be listed
        """
        try:
            logger.debug(
                "listing_custom_objects",
                group=group,
                plural=plural,
                namespace=namespace,
                selector=label_selector,
            )
            response = self.custom_objects.list_namespaced_custom_object(
                group=group,
                version=version,
                namespace=namespace,
                plural=plural,
                label_selector=label_selector,
            )
            items = response.get("items", [])

            logger.info(
                "custom_objects_listed", plural=plural, namespace=namespace, count=len(items)
            )
            return items

        except ApiException as e:
            logger.error(
                "list_custom_objects_failed",
                plural=plural,
                namespace=namespace,
                status=e.status,
                reason=e.reason,
            )
            raise KubernetesError(f"Failed to list {plural} in {namespace}: {e.reason}") from e
