"""Etcd provider interface."""

from abc import ABC, abstractmethod

from kcpguard.core.models import EtcdMember


class EtcdProvider(ABC):
    """Client for a single etcd endpoint."""

    @abstractmethod
    async def members(self) -> list[EtcdMember]:
        """List cluster members as seen by this endpoint.

        Member listing goes through raft consensus, so a successful response
        also shows the endpoint is part of a healthy quorum.

        Returns:
            Members with cluster ID and active alarms populated

        Raises:
            EtcdClientError: If the members cannot be listed
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""
