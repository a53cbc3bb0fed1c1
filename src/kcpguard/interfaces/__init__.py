"""Interface definitions for KCP-GUARD collaborators."""

from kcpguard.interfaces.etcd_provider import EtcdProvider
from kcpguard.interfaces.health_check import HealthCheck, HealthCheckResult
from kcpguard.interfaces.kubernetes_provider import (
    KubernetesProvider,
    NodeInfo,
    ObjectStore,
    PodInfo,
)
from kcpguard.interfaces.remote_cluster import RemoteCluster, RemoteClusterProvider

__all__ = [
    "EtcdProvider",
    "HealthCheck",
    "HealthCheckResult",
    "KubernetesProvider",
    "NodeInfo",
    "ObjectStore",
    "PodInfo",
    "RemoteCluster",
    "RemoteClusterProvider",
]
