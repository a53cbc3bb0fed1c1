"""Kubeadm static pod helpers."""

from kcpguard.core.exceptions import StaticPodNotReadyError, StaticPodReadyConditionMissingError
from kcpguard.interfaces.kubernetes_provider import PodInfo

KUBE_APISERVER = "kube-apiserver"
KUBE_CONTROLLER_MANAGER = "kube-controller-manager"
ETCD = "etcd"


def static_pod_name(component: str, node_name: str) -> str:
    """Name of a kubeadm static pod: the kubelet suffixes the node name."""
    return f"{component}-{node_name}"


def check_static_pod_ready_condition(pod: PodInfo) -> Exception | None:
    """Check the Ready condition of a static pod.

    Returns:
        None if the pod is Ready, otherwise the error describing why not
    """
    if "Ready" not in pod.conditions:
        return StaticPodReadyConditionMissingError(
            f"pod does not have ready condition: {pod.name}"
        )
    if pod.conditions["Ready"] != "True":
        return StaticPodNotReadyError(f"static pod {pod.namespace}/{pod.name} is not ready")
    return None
