"""Kubernetes adapter implementing the provider interfaces."""

import asyncio

from kcpguard.clients.kubernetes_client import KubernetesClient
from kcpguard.core.config import KubeadmConfig
from kcpguard.core.exceptions import KubernetesNotFoundError
from kcpguard.core.models import Machine
from kcpguard.interfaces.exceptions import KubernetesProviderError, ResourceNotFoundError
from kcpguard.interfaces.kubernetes_provider import (
    KubernetesProvider,
    NodeInfo,
    ObjectStore,
    PodInfo,
)
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)


def format_label_selector(labels: dict[str, str]) -> str:
    """Render a label map as an equality-based selector string."""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class KubernetesAdapter(KubernetesProvider, ObjectStore):
    """Adapter wrapping KubernetesClient to implement the provider interfaces.

    Blocking client calls run in a worker thread so that cancelling the
    awaiting task returns control to the caller immediately.
    """

    def __init__(
        self,
        kubeconfig_path: str | None = None,
        context: str | None = None,
        client: KubernetesClient | None = None,
        kubeadm_config: KubeadmConfig | None = None,
    ):
        """Initialize Kubernetes adapter.

        Args:
            kubeconfig_path: Path to kubeconfig file (optional)
            context: Kubernetes context to use (optional)
            client: Existing client to wrap instead of loading a kubeconfig
            kubeadm_config: Machine API coordinates (defaults to v1alpha3)
        """
        try:
            self.client = client or KubernetesClient(
                kubeconfig_path=kubeconfig_path, context=context
            )
            self.kubeadm_config = kubeadm_config or KubeadmConfig()
            logger.debug("k8s_adapter_initialized", context=context)
        except Exception as e:
            raise KubernetesProviderError(f"Failed to initialize K8s adapter: {e}") from e

    async def get_nodes(self, label_selector: str | None = None) -> list[NodeInfo]:
        """Get nodes in the cluster.

        Args:
            label_selector: Optional label selector

        Returns:
            List of normalized node information

        Raises:
            KubernetesProviderError: If nodes cannot be retrieved
        """
        try:
            nodes = await asyncio.to_thread(self.client.get_nodes, label_selector)
        except Exception as e:
            logger.error("get_nodes_failed", error=str(e))
            raise KubernetesProviderError(f"Failed to get nodes: {e}") from e

        node_infos = []
        for node in nodes:
            conditions = {}
            if node.status and node.status.conditions:
                conditions = {cond.type: cond.status for cond in node.status.conditions}

            node_infos.append(
                NodeInfo(
                    name=node.metadata.name,
                    provider_id=(node.spec.provider_id if node.spec else None) or "",
                    ready=conditions.get("Ready") == "True",
                    conditions=conditions,
                    labels=dict(node.metadata.labels or {}),
                )
            )

        return node_infos

    async def get_pod(self, name: str, namespace: str) -> PodInfo:
        """Get a single pod.

        Args:
            name: Pod name
            namespace: Namespace

        Returns:
            Normalized pod information

        Raises:
            ResourceNotFoundError: If the pod does not exist
            KubernetesProviderError: If the pod cannot be retrieved
        """
        try:
            pod = await asyncio.to_thread(self.client.get_pod, name, namespace)
        except KubernetesNotFoundError as e:
            raise ResourceNotFoundError(str(e)) from e
        except Exception as e:
            logger.error("get_pod_failed", name=name, namespace=namespace, error=str(e))
            raise KubernetesProviderError(f"Failed to get pod {namespace}/{name}: {e}") from e

        conditions = {}
        if pod.status and pod.status.conditions:
            conditions = {cond.type: cond.status for cond in pod.status.conditions}

        return PodInfo(
            name=pod.metadata.name,
            namespace=pod.metadata.namespace,
            phase=(pod.status.phase if pod.status else None) or "",
            conditions=conditions,
        )

    async def get_secret(self, name: str, namespace: str) -> dict[str, bytes]:
        """Get decoded secret data.

        Args:
            name: Secret name
            namespace: Namespace

        Returns:
            Mapping of data key to decoded bytes

        Raises:
            ResourceNotFoundError: If the secret does not exist
            KubernetesProviderError: If the secret cannot be retrieved
        """
        try:
            return await asyncio.to_thread(self.client.get_secret_data, name, namespace)
        except KubernetesNotFoundError as e:
            raise ResourceNotFoundError(str(e)) from e
        except Exception as e:
            logger.error("get_secret_failed", name=name, namespace=namespace, error=str(e))
            raise KubernetesProviderError(f"Failed to get secret {namespace}/{name}: {e}") from e

    async def list_machines(self, namespace: str, labels: dict[str, str]) -> list[Machine]:
        """List Machines in a namespace matching all labels.

        Args:
            namespace: Namespace
            labels: Labels every Machine must carry

        Returns:
            List of normalized Machines

        Raises:
            KubernetesProviderError: If Machines cannot be listed
        """
        machine_api = self.kubeadm_config.machines
        try:
            items = await asyncio.to_thread(
                self.client.list_custom_objects,
                machine_api.group,
                machine_api.version,
                machine_api.plural,
                namespace,
                format_label_selector(labels),
            )
            return [Machine.from_dict(item) for item in items]

        except Exception as e:
            logger.error("list_machines_failed", namespace=namespace, error=str(e))
            raise KubernetesProviderError(f"Failed to list machines: {e}") from e
