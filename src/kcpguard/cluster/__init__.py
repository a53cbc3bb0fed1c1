"""Management and target cluster access."""

from kcpguard.cluster.management import ManagementCluster
from kcpguard.cluster.target import TargetCluster

__all__ = ["ManagementCluster", "TargetCluster"]
