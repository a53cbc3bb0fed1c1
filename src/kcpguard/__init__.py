"""Kubeadm Control Plane Guard (KCP-GUARD).

Verify that a workload cluster's kubeadm control plane and etcd members are
healthy before the management cluster scales, upgrades or mutates them.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
