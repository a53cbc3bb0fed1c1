"""Runs health checks and cross-validates them against the Machine inventory."""

from typing import Protocol

from kcpguard.core.exceptions import (
    MachineNodeNotCheckedError,
    MachineNodeRefMissingError,
    NodeHealthError,
    NodeMachineCountMismatchError,
)
from kcpguard.core.models import ClusterKey, Machine
from kcpguard.interfaces.health_check import HealthCheck
from kcpguard.machines.filters import MachineFilter, owned_control_plane_machines
from kcpguard.utils.logging import bound_context, get_logger, log_error

logger = get_logger(__name__)


class MachineInventory(Protocol):
    """Source of the Machines tracked for a cluster."""

    async def get_machines_for_cluster(
        self, cluster_key: ClusterKey, *filters: MachineFilter
    ) -> list[Machine]: ...


class HealthCheckOrchestrator:
    """Runs a health check and reports any errors discovered.

    The orchestrator does not know what a check inspects. It turns per-node
    failures into one aggregate error and makes sure there is a 1:1
    correspondence between the checked nodes and the control plane Machines.
    """

    def __init__(
        self,
        inventory: MachineInventory,
        control_plane_kind: str = "KubeadmControlPlane",
    ):
        """Initialize health check orchestrator.

        Args:
            inventory: Provides the Machines of a cluster
            control_plane_kind: Kind of the control plane owning the Machines
        """
        self.inventory = inventory
        self.control_plane_kind = control_plane_kind

    async def run(
        self,
        check: HealthCheck,
        cluster_key: ClusterKey,
        control_plane_name: str,
    ) -> None:
        """Run a health check against a cluster.

        Args:
            check: Health check to run
            cluster_key: Target cluster
            control_plane_name: Name of the control plane owning the Machines

        Raises:
            NodeHealthError: If any node failed the check
            InventoryMismatchError: If nodes and Machines do not match 1:1
            HealthCheckError: If the check itself failed
            KubernetesProviderError: If nodes or Machines cannot be listed
        """
        with bound_context(cluster=str(cluster_key), check=check.name):
            logger.info("running_health_check", control_plane=control_plane_name)

            try:
                node_checks = await check.execute()
            except Exception as e:
                log_error(logger, e, operation=check.name)
                raise

            failures = {name: err for name, err in node_checks.items() if err is not None}
            if failures:
                logger.warning("health_check_node_failures", failed_nodes=sorted(failures))
                raise NodeHealthError(failures)

            # Make sure the Machine inventory is aware of every checked node.
            machines = await self.inventory.get_machines_for_cluster(
                cluster_key,
                owned_control_plane_machines(control_plane_name, kind=self.control_plane_kind),
            )

            for machine in machines:
                if machine.node_ref is None:
                    raise MachineNodeRefMissingError(
                        f"control plane machine {machine.namespace}/{machine.name} "
                        "has no status.nodeRef"
                    )
                if machine.node_ref.name not in node_checks:
                    raise MachineNodeNotCheckedError(
                        f"machine's ({machine.namespace}/{machine.name}) node "
                        f"({machine.node_ref.name}) was not checked"
                    )

            if len(node_checks) != len(machines):
                raise NodeMachineCountMismatchError(
                    f"number of nodes and machines in namespace {cluster_key.namespace} "
                    f"did not match: {len(node_checks)} nodes {len(machines)} machines"
                )

            logger.info("health_check_passed", node_count=len(node_checks))
