"""Remote cluster access interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from kubernetes.client import Configuration

from kcpguard.core.models import ClusterKey
from kcpguard.interfaces.kubernetes_provider import KubernetesProvider


@dataclass
class RemoteCluster:
    """API access and REST connection profile for a target cluster."""

    kubernetes: KubernetesProvider
    rest_config: Configuration


class RemoteClusterProvider(ABC):
    """Resolves a cluster key into access to that cluster."""

    @abstractmethod
    async def connect(self, cluster_key: ClusterKey) -> RemoteCluster:
        """Build API access for a target cluster.

        Args:
            cluster_key: Target cluster

        Returns:
            RemoteCluster for the target

        Raises:
            RemoteClusterError: If access cannot be established
        """
