"""Health check interface for target cluster control planes."""

from abc import ABC, abstractmethod

HealthCheckResult = dict[str, Exception | None]
"""Maps every checked node name to its error, or None if the node is healthy."""


class HealthCheck(ABC):
    """Abstract interface for per-node health checks.

    A check inspects every control plane node of one target cluster and
    reports an entry for each node it discovered. Failures on one node are
    recorded in the result and do not stop the remaining nodes from being
    checked; only failures that prevent checking altogether are raised.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the check name for logging/reporting."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Get a description of what this check validates."""

    @abstractmethod
    async def execute(self) -> HealthCheckResult:
        """Execute the health check.

        Returns:
            Per-node results, with every discovered node present

        Raises:
            KubernetesProviderError: If nodes cannot be discovered
            HealthCheckError: If the cluster as a whole is inconsistent
        """
