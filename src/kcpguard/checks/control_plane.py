"""Control plane static pod health check."""

from typing import TYPE_CHECKING

from kcpguard.checks.static_pods import (
    KUBE_APISERVER,
    KUBE_CONTROLLER_MANAGER,
    check_static_pod_ready_condition,
    static_pod_name,
)
from kcpguard.interfaces.exceptions import KubernetesProviderError
from kcpguard.interfaces.health_check import HealthCheck, HealthCheckResult
from kcpguard.utils.logging import get_logger

if TYPE_CHECKING:
    from kcpguard.cluster.target import TargetCluster

logger = get_logger(__name__)


class ControlPlaneHealthCheck(HealthCheck):
    """Check the kubeadm control plane static pods on every control plane node.

    Best effort: a node that passes can become unhealthy right after.
    """

    def __init__(self, cluster: "TargetCluster"):
        """Initialize control plane health check.

        Args:
            cluster: Target cluster to check
        """
        self.cluster = cluster

    @property
    def name(self) -> str:
        """Get check name."""
        return "control_plane_health"

    @property
    def description(self) -> str:
        """Get check description."""
        return "Validates kube-apiserver and kube-controller-manager static pods are ready"

    async def execute(self) -> HealthCheckResult:
        """Execute control plane health check.

        Returns:
            Map of every control plane node name to its error, or None

        Raises:
            KubernetesProviderError: If control plane nodes cannot be listed
        """
        nodes = await self.cluster.get_control_plane_nodes()
        namespace = self.cluster.config.kubeadm.system_namespace
        k8s = self.cluster.kubernetes

        logger.info("checking_control_plane", node_count=len(nodes))

        response: HealthCheckResult = {}
        for node in nodes:
            name = node.name
            response[name] = None

            try:
                api_server = await k8s.get_pod(static_pod_name(KUBE_APISERVER, name), namespace)
            except KubernetesProviderError as e:
                response[name] = e
                continue
            response[name] = check_static_pod_ready_condition(api_server)

            # The controller manager result replaces the api server result.
            try:
                controller_manager = await k8s.get_pod(
                    static_pod_name(KUBE_CONTROLLER_MANAGER, name), namespace
                )
            except KubernetesProviderError as e:
                response[name] = e
                continue
            response[name] = check_static_pod_ready_condition(controller_manager)

            logger.debug("control_plane_node_checked", node=name, healthy=response[name] is None)

        return response
