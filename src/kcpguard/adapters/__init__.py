"""Adapter implementations for external services."""

from kcpguard.adapters.etcd_adapter import EtcdAdapter
from kcpguard.adapters.k8s_adapter import KubernetesAdapter

__all__ = [
    "EtcdAdapter",
    "KubernetesAdapter",
]
