"""Etcd member consensus and consistency health check."""

from typing import TYPE_CHECKING

from kcpguard.core.exceptions import (
    EmptyProviderIDError,
    EtcdClusterIDMismatchError,
    EtcdMemberAlarmError,
    EtcdMembershipMismatchError,
    EtcdMemberNotFoundError,
    EtcdMemberSetMismatchError,
)
from kcpguard.core.models import member_for_name, member_id_set
from kcpguard.interfaces.exceptions import EtcdClientError
from kcpguard.interfaces.health_check import HealthCheck, HealthCheckResult
from kcpguard.utils.logging import get_logger

if TYPE_CHECKING:
    from kcpguard.cluster.target import TargetCluster

logger = get_logger(__name__)


class EtcdHealthCheck(HealthCheck):
    """Check every etcd member through the etcd static pod on each control plane node.

    A node is healthy when its member can list the cluster membership (which
    requires consensus), reports no alarms, and agrees with every other node
    on the cluster ID and the set of member IDs. After all nodes are checked
    the number of members must equal the number of control plane nodes, so
    that members added or left behind out of band are caught.

    This is a best effort check used to decide whether the control plane can
    be scaled or upgraded; nodes can become unhealthy right after it passes.
    """

    def __init__(self, cluster: "TargetCluster"):
        """Initialize etcd health check.

        Args:
            cluster: Target cluster to check
        """
        self.cluster = cluster

    @property
    def name(self) -> str:
        """Get check name."""
        return "etcd_health"

    @property
    def description(self) -> str:
        """Get check description."""
        return "Validates etcd members are alarm-free and agree on cluster identity and membership"

    async def execute(self) -> HealthCheckResult:
        """Execute etcd health check.

        Returns:
            Map of every control plane node name to its error, or None

        Raises:
            KubernetesProviderError: If control plane nodes cannot be listed
            CertificateError: If the etcd client identity cannot be minted
            EtcdMembershipMismatchError: If the member count differs from the node count
        """
        # None means not yet established by any node in this pass.
        known_cluster_id: int | None = None
        known_member_ids: set[int] | None = None

        nodes = await self.cluster.get_control_plane_nodes()
        bundle = self.cluster.generate_etcd_tls_client_bundle()

        logger.info("checking_etcd", node_count=len(nodes))

        response: HealthCheckResult = {}
        for node in nodes:
            name = node.name
            response[name] = None

            if not node.provider_id:
                response[name] = EmptyProviderIDError("empty provider ID")
                continue

            try:
                etcd_client = await self.cluster.get_etcd_client_for_node(name, bundle)
            except EtcdClientError as e:
                response[name] = EtcdClientError(f"failed to create etcd client: {e}")
                continue

            try:
                members = await etcd_client.members()
            except EtcdClientError as e:
                response[name] = EtcdClientError(
                    f"failed to list etcd members using etcd client: {e}"
                )
                continue
            finally:
                await etcd_client.close()

            member = member_for_name(members, name)
            if member is None:
                response[name] = EtcdMemberNotFoundError(
                    f"etcd member for node {name} not found in member list"
                )
                continue

            if member.alarms:
                alarms = [alarm.value for alarm in member.alarms]
                response[name] = EtcdMemberAlarmError(
                    f"etcd member reports alarms: {alarms}", alarms=alarms
                )
                continue

            if known_cluster_id is None:
                known_cluster_id = member.cluster_id
            elif member.cluster_id != known_cluster_id:
                response[name] = EtcdClusterIDMismatchError(
                    f"etcd member has cluster ID {member.cluster_id}, but all previously "
                    f"seen etcd members have cluster ID {known_cluster_id}",
                    cluster_id=member.cluster_id,
                    known_cluster_id=known_cluster_id,
                )
                continue

            member_ids = member_id_set(members)
            if known_member_ids is None:
                known_member_ids = member_ids
            elif member_ids != known_member_ids:
                response[name] = EtcdMemberSetMismatchError(
                    f"etcd member reports members IDs {sorted(member_ids)}, but all previously "
                    f"seen etcd members reported member IDs {sorted(known_member_ids)}",
                    member_ids=member_ids,
                    known_member_ids=known_member_ids,
                )

            logger.debug("etcd_member_checked", node=name, healthy=response[name] is None)

        # There should be exactly one etcd member per control plane node.
        member_count = len(known_member_ids or ())
        if len(nodes) != member_count:
            logger.warning(
                "etcd_membership_mismatch",
                node_count=len(nodes),
                member_count=member_count,
            )
            raise EtcdMembershipMismatchError(
                f"there are {len(nodes)} control plane nodes, but {member_count} etcd members",
                node_count=len(nodes),
                member_count=member_count,
                result=response,
            )

        return response
