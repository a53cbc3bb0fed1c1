"""Core data models for KCP-GUARD."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClusterKey(BaseModel):
    """Namespace and name identifying a target cluster."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ObjectReference(BaseModel):
    """Reference to another Kubernetes object."""

    kind: str = ""
    name: str
    namespace: str = ""
    api_version: str = ""
    uid: str = ""


class OwnerReference(BaseModel):
    """Owner reference from object metadata."""

    api_version: str = ""
    kind: str
    name: str
    uid: str = ""
    controller: bool | None = None


class Machine(BaseModel):
    """Normalized Cluster API Machine."""

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(default_factory=list)
    creation_timestamp: datetime | None = None
    deletion_timestamp: datetime | None = None
    node_ref: ObjectReference | None = None
    provider_id: str | None = None

    def controller_ref(self) -> OwnerReference | None:
        """Get the owner reference that is the managing controller.

        Returns:
            The controller owner reference, or None if the Machine has none
        """
        return next((ref for ref in self.owner_references if ref.controller), None)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Machine":
        """Build a Machine from a raw custom object.

        Args:
            obj: Machine object as returned by the custom objects API

        Returns:
            Machine instance
        """
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}

        owner_references = [
            OwnerReference(
                api_version=ref.get("apiVersion", ""),
                kind=ref["kind"],
                name=ref["name"],
                uid=ref.get("uid", ""),
                controller=ref.get("controller"),
            )
            for ref in metadata.get("ownerReferences") or []
        ]

        node_ref = None
        raw_node_ref = status.get("nodeRef")
        if raw_node_ref:
            node_ref = ObjectReference(
                kind=raw_node_ref.get("kind", ""),
                name=raw_node_ref["name"],
                namespace=raw_node_ref.get("namespace", ""),
                api_version=raw_node_ref.get("apiVersion", ""),
                uid=raw_node_ref.get("uid", ""),
            )

        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace", ""),
            labels=metadata.get("labels") or {},
            owner_references=owner_references,
            creation_timestamp=metadata.get("creationTimestamp"),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            node_ref=node_ref,
            provider_id=spec.get("providerID"),
        )


class AlarmType(str, Enum):
    """Etcd alarm types."""

    NONE = "NONE"
    NOSPACE = "NOSPACE"
    CORRUPT = "CORRUPT"


class EtcdMember(BaseModel):
    """Etcd member as reported by one etcd endpoint."""

    id: int
    name: str = ""
    cluster_id: int
    peer_urls: list[str] = Field(default_factory=list)
    client_urls: list[str] = Field(default_factory=list)
    alarms: list[AlarmType] = Field(default_factory=list)


def member_for_name(members: list[EtcdMember], name: str) -> EtcdMember | None:
    """Find the member with the given name.

    Args:
        members: Members to search
        name: Member name, which kubeadm sets to the node name

    Returns:
        The matching member, or None
    """
    return next((m for m in members if m.name == name), None)


def member_id_set(members: list[EtcdMember]) -> set[int]:
    """Get the set of member IDs."""
    return {m.id for m in members}
