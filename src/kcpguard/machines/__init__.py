"""Machine selection helpers."""

from kcpguard.machines.filters import (
    MachineFilter,
    filter_machines,
    has_deletion_timestamp,
    has_outdated_configuration,
    matches_configuration_hash,
    older_than,
    owned_control_plane_machines,
)

__all__ = [
    "MachineFilter",
    "filter_machines",
    "has_deletion_timestamp",
    "has_outdated_configuration",
    "matches_configuration_hash",
    "older_than",
    "owned_control_plane_machines",
]
