"""Kubernetes provider interfaces for management and target clusters."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from kcpguard.core.models import Machine


@dataclass
class NodeInfo:
    """Normalized node information."""

    name: str
    provider_id: str
    ready: bool
    conditions: dict[str, str]
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class PodInfo:
    """Normalized pod information.

    ``conditions`` maps condition type to status; a type that is absent was
    never reported by the kubelet.
    """

    name: str
    namespace: str
    phase: str
    conditions: dict[str, str]


class KubernetesProvider(ABC):
    """Read access to a target cluster's nodes and pods."""

    @abstractmethod
    async def get_nodes(self, label_selector: str | None = None) -> list[NodeInfo]:
        """Get nodes in the cluster.

        Args:
            label_selector: Optional label selector

        Returns:
            List of normalized node information

        Raises:
            KubernetesProviderError: If nodes cannot be retrieved
        """

    @abstractmethod
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


class ObjectStore(ABC):
    """Read access to the management cluster's secrets and Machines."""

    @abstractmethod
    async def get_secret(self, name: str, namespace: str) -> dict[str, bytes]:
        """Get decoded secret data.

        Raises:
            ResourceNotFoundError: If the secret does not exist
            KubernetesProviderError: If the secret cannot be retrieved
        """

    @abstractmethod
    async def list_machines(self, namespace: str, labels: dict[str, str]) -> list[Machine]:
        """List Machines in a namespace matching all labels.

        Raises:
            KubernetesProviderError: If Machines cannot be listed
        """
