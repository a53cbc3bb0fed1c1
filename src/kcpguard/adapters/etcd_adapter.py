"""Etcd adapter implementing EtcdProvider interface."""

import asyncio
from typing import Any

from etcd3 import etcdrpc
from pydantic import ValidationError

from kcpguard.clients.etcd_client import EtcdClient
from kcpguard.core.models import AlarmType, EtcdMember
from kcpguard.interfaces.etcd_provider import EtcdProvider
from kcpguard.interfaces.exceptions import EtcdClientError
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)

ALARM_TYPES = {
    etcdrpc.NONE: AlarmType.NONE,
    etcdrpc.NOSPACE: AlarmType.NOSPACE,
    etcdrpc.CORRUPT: AlarmType.CORRUPT,
}


def alarm_type(value: int) -> AlarmType:
    """Map a protobuf alarm type to AlarmType.

    Raises:
        ValueError: If the alarm type is unknown
    """
    try:
        return ALARM_TYPES[value]
    except KeyError:
        raise ValueError(f"Unknown etcd alarm type {value}") from None


def parse_members(member_list: Any, alarms: list[Any]) -> list[EtcdMember]:
    """Join a member list response with alarm entries.

    The cluster ID comes from the response header of the endpoint that
    answered; alarms are attached to members by member ID.

    Args:
        member_list: MemberListResponse
        alarms: Alarms with ``alarm_type`` and ``member_id``

    Returns:
        Members with cluster ID and alarms populated
    """
    cluster_id = member_list.header.cluster_id

    alarms_by_member: dict[int, list[AlarmType]] = {}
    for entry in alarms:
        alarm = alarm_type(entry.alarm_type)
        if alarm is AlarmType.NONE:
            continue
        alarms_by_member.setdefault(entry.member_id, []).append(alarm)

    return [
        EtcdMember(
            id=raw.ID,
            name=raw.name,
            cluster_id=cluster_id,
            peer_urls=list(raw.peerURLs),
            client_urls=list(raw.clientURLs),
            alarms=alarms_by_member.get(raw.ID, []),
        )
        for raw in member_list.members
    ]


class EtcdAdapter(EtcdProvider):
    """Adapter wrapping EtcdClient to implement EtcdProvider interface."""

    def __init__(self, client: EtcdClient):
        """Initialize etcd adapter.

        Args:
            client: Connected etcd client
        """
        self.client = client

    async def members(self) -> list[EtcdMember]:
        """List cluster members as seen by this endpoint.

        Returns:
            Members with cluster ID and active alarms populated

        Raises:
            EtcdClientError: If the members cannot be listed
        """
        try:
            member_list = await asyncio.to_thread(self.client.member_list)
            alarms = await asyncio.to_thread(self.client.alarm_list)
            return parse_members(member_list, alarms)

        except (AttributeError, ValueError, ValidationError) as e:
            logger.error("etcd_members_parse_failed", endpoint=self.client.endpoint, error=str(e))
            raise EtcdClientError(f"Failed to parse etcd member list: {e}") from e
        except Exception as e:
            logger.error("etcd_members_failed", endpoint=self.client.endpoint, error=str(e))
            raise EtcdClientError(f"Failed to list etcd members: {e}") from e

    async def close(self) -> None:
        """Release the underlying connection."""
        await asyncio.to_thread(self.client.close)
