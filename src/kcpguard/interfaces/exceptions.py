"""Exceptions for interface implementations."""


class InterfaceError(Exception):
    """Base exception for all interface-related errors."""


class KubernetesProviderError(InterfaceError):
    """Exception for Kubernetes provider operations."""


class ResourceNotFoundError(KubernetesProviderError):
    """Requested Kubernetes object does not exist."""


class RemoteClusterError(InterfaceError):
    """Exception for resolving access to a target cluster."""


class TunnelError(InterfaceError):
    """Exception for opening a tunnel through the target API server."""


class EtcdClientError(InterfaceError):
    """Exception for etcd client operations."""
