"""Target cluster health checks."""

from kcpguard.checks.control_plane import ControlPlaneHealthCheck
from kcpguard.checks.etcd import EtcdHealthCheck
from kcpguard.checks.orchestrator import HealthCheckOrchestrator

__all__ = [
    "ControlPlaneHealthCheck",
    "EtcdHealthCheck",
    "HealthCheckOrchestrator",
]
