"""Custom exceptions for KCP-GUARD."""


class KcpGuardError(Exception):
    """Base exception for all KCP-GUARD errors."""


class ConfigurationError(KcpGuardError):
    """Configuration-related errors."""


class KubernetesError(KcpGuardError):
    """Kubernetes operation failed."""


class KubernetesNotFoundError(KubernetesError):
    """Kubernetes object does not exist."""


class EtcdError(KcpGuardError):
    """Etcd operation failed."""


class CertificateError(KcpGuardError):
    """Client certificate could not be generated from the etcd CA."""


class EtcdCAError(KcpGuardError):
    """Etcd certificate authority could not be loaded."""


class EtcdCANotFoundError(EtcdCAError):
    """The etcd CA secret does not exist in the management cluster."""


class EtcdCAMalformedError(EtcdCAError):
    """The etcd CA secret exists but is missing a required field.

    Attributes:
        field: Name of the missing secret data field
    """

    def __init__(self, message: str, field: str):
        """Initialize malformed CA error.

        Args:
            message: Error message
            field: Name of the missing secret data field
        """
        super().__init__(message)
        self.field = field


class NodeCheckError(KcpGuardError):
    """A health observation recorded against a single node."""


class EmptyProviderIDError(NodeCheckError):
    """Node has no provider ID assigned."""


class StaticPodNotReadyError(NodeCheckError):
    """Static pod reports a Ready condition that is not True."""


class StaticPodReadyConditionMissingError(NodeCheckError):
    """Static pod has no Ready condition at all."""


class EtcdMemberNotFoundError(NodeCheckError):
    """No etcd member matches the node name."""


class EtcdMemberAlarmError(NodeCheckError):
    """Etcd member reports active alarms."""

    def __init__(self, message: str, alarms: list[str]):
        super().__init__(message)
        self.alarms = alarms


class EtcdClusterIDMismatchError(NodeCheckError):
    """Etcd member belongs to a different cluster than previously seen members."""

    def __init__(self, message: str, cluster_id: int, known_cluster_id: int):
        super().__init__(message)
        self.cluster_id = cluster_id
        self.known_cluster_id = known_cluster_id


class EtcdMemberSetMismatchError(NodeCheckError):
    """Etcd member reports a member list different from previously seen members."""

    def __init__(self, message: str, member_ids: set[int], known_member_ids: set[int]):
        super().__init__(message)
        self.member_ids = member_ids
        self.known_member_ids = known_member_ids


class HealthCheckError(KcpGuardError):
    """Target cluster failed a health check."""


class NodeHealthError(HealthCheckError):
    """Aggregate of per-node health check failures.

    Attributes:
        failures: Mapping of node name to the error recorded for that node
    """

    def __init__(self, failures: dict[str, Exception]):
        """Initialize aggregate node error.

        Args:
            failures: Mapping of node name to the error recorded for that node
        """
        self.failures = dict(failures)
        super().__init__(self._render())

    def _render(self) -> str:
        messages = [f'node "{name}": {error}' for name, error in self.failures.items()]
        if len(messages) == 1:
            return messages[0]
        return "[" + ", ".join(messages) + "]"

    @property
    def node_names(self) -> list[str]:
        """Names of the nodes that failed."""
        return list(self.failures)


class EtcdMembershipMismatchError(HealthCheckError):
    """Number of etcd members differs from the number of control plane nodes.

    Attributes:
        node_count: Number of control plane nodes discovered
        member_count: Number of etcd members known after the check
        result: Per-node results collected before the mismatch was detected
    """

    def __init__(
        self,
        message: str,
        node_count: int,
        member_count: int,
        result: dict[str, Exception | None] | None = None,
    ):
        super().__init__(message)
        self.node_count = node_count
        self.member_count = member_count
        self.result = result or {}


class InventoryMismatchError(HealthCheckError):
    """Checked nodes do not correspond 1:1 with control plane Machines."""


class MachineNodeRefMissingError(InventoryMismatchError):
    """Control plane Machine has no status.nodeRef."""


class MachineNodeNotCheckedError(InventoryMismatchError):
    """Machine references a node that was not checked."""


class NodeMachineCountMismatchError(InventoryMismatchError):
    """Number of checked nodes differs from number of owned Machines."""
