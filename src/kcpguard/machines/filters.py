"""Predicates for selecting Machines.

Each filter is a plain function of a single Machine. ``filter_machines``
keeps the Machines that satisfy every filter.
"""

from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from kcpguard.core.models import Machine

MachineFilter = Callable[[Machine | None], bool]

KUBEADM_CONTROL_PLANE_KIND = "KubeadmControlPlane"
KUBEADM_CONTROL_PLANE_HASH_LABEL = "kubeadm.controlplane.cluster.x-k8s.io/hash"


def owned_control_plane_machines(
    control_plane_name: str,
    kind: str = KUBEADM_CONTROL_PLANE_KIND,
) -> MachineFilter:
    """Match Machines whose controller is the named control plane.

    Usage: ``await management.get_machines_for_cluster(key, owned_control_plane_machines(name))``
    """

    def _filter(machine: Machine | None) -> bool:
        if machine is None:
            return False
        controller_ref = machine.controller_ref()
        if controller_ref is None:
            return False
        return controller_ref.kind == kind and controller_ref.name == control_plane_name

    return _filter


def has_deletion_timestamp() -> MachineFilter:
    """Match Machines that are being deleted."""

    def _filter(machine: Machine | None) -> bool:
        return machine is not None and machine.deletion_timestamp is not None

    return _filter


def matches_configuration_hash(
    config_hash: str,
    label: str = KUBEADM_CONTROL_PLANE_HASH_LABEL,
) -> MachineFilter:
    """Match Machines labeled with the given control plane configuration hash.

    Machines without the hash label never match.
    """

    def _filter(machine: Machine | None) -> bool:
        if machine is None:
            return False
        machine_hash = machine.labels.get(label)
        if machine_hash is None:
            return False
        return machine_hash == config_hash

    return _filter


def has_outdated_configuration(
    config_hash: str,
    label: str = KUBEADM_CONTROL_PLANE_HASH_LABEL,
) -> MachineFilter:
    """Match Machines that do not carry the given configuration hash."""
    matches = matches_configuration_hash(config_hash, label)

    def _filter(machine: Machine | None) -> bool:
        if machine is None:
            return False
        return not matches(machine)

    return _filter


def _as_utc(value: datetime) -> datetime:
    # API timestamps are UTC; naive values are taken to be UTC too.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def older_than(t: datetime) -> MachineFilter:
    """Match Machines created strictly before t. A naive t is taken as UTC."""
    cutoff = _as_utc(t)

    def _filter(machine: Machine | None) -> bool:
        if machine is None or machine.creation_timestamp is None:
            return False
        return _as_utc(machine.creation_timestamp) < cutoff

    return _filter


def filter_machines(
    machines: Iterable[Machine],
    *filters: MachineFilter,
) -> list[Machine]:
    """Keep the Machines that satisfy all filters.

    Args:
        machines: Machines to filter
        *filters: Predicates combined with logical AND

    Returns:
        Matching Machines in their original order (all Machines if no filters)
    """
    if not filters:
        return list(machines)
    return [m for m in machines if all(f(m) for f in filters)]
