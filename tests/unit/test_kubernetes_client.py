"""Unit tests for Kubernetes client.

This module tests the KubernetesClient wrapper for the API operations the
health checks need:
- Client loading from kubeconfig, default locations and in-cluster config
- Node listing by label selector
- Pod and secret reads, including not found handling
- Machine custom object listing
"""

import base64
from unittest.mock import MagicMock, Mock, patch

import pytest
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Node, V1NodeList, V1ObjectMeta, V1Pod, V1Secret
from kubernetes.config import ConfigException

from kcpguard.clients.kubernetes_client import KubernetesClient
from kcpguard.core.exceptions import KubernetesError, KubernetesNotFoundError


@pytest.fixture
def k8s_client() -> KubernetesClient:
    """Provide a client with mocked API groups."""
    client = KubernetesClient(api_client=MagicMock())
    client.core_v1 = Mock()
    client.custom_objects = Mock()
    return client


class TestKubernetesClientInitialization:
    """Tests for KubernetesClient initialization."""

    def test_with_api_client(self) -> None:
        """Test a preconfigured API client skips kubeconfig loading."""
        api_client = MagicMock()

        with patch("kubernetes.config.new_client_from_config") as mock_load:
            client = KubernetesClient(api_client=api_client)

        mock_load.assert_not_called()
        assert client.api_client is api_client
        assert client.core_v1.api_client is api_client

    def test_with_kubeconfig(self) -> None:
        """Test the kubeconfig path and context are used."""
        with patch("kubernetes.config.new_client_from_config") as mock_load:
            client = KubernetesClient(kubeconfig_path="/path/to/kubeconfig", context="mgmt")

        mock_load.assert_called_once_with(config_file="/path/to/kubeconfig", context="mgmt")
        assert client.api_client is mock_load.return_value

    def test_default_kubeconfig(self) -> None:
        """Test the default kubeconfig location is tried first."""
        with patch("kubernetes.config.new_client_from_config") as mock_load:
            KubernetesClient(context="mgmt")

        mock_load.assert_called_once_with(context="mgmt")

    def test_in_cluster_fallback(self) -> None:
        """Test in-cluster config is used when no kubeconfig exists."""
        with (
            patch(
                "kubernetes.config.new_client_from_config",
                side_effect=ConfigException("no kubeconfig"),
            ),
            patch("kubernetes.config.load_incluster_config") as mock_incluster,
        ):
            client = KubernetesClient()

        mock_incluster.assert_called_once()
        assert client.api_client is not None

    def test_initialization_failure(self) -> None:
        """Test a failure to load any configuration raises KubernetesError."""
        with (
            patch(
                "kubernetes.config.new_client_from_config",
                side_effect=ConfigException("no kubeconfig"),
            ),
            patch(
                "kubernetes.config.load_incluster_config",
                side_effect=ConfigException("not in cluster"),
            ),
        ):
            with pytest.raises(KubernetesError, match="Failed to initialize Kubernetes client"):
                KubernetesClient()


class TestGetNodes:
    """Tests for get_nodes."""

    def test_get_nodes(self, k8s_client: KubernetesClient) -> None:
        """Test nodes are listed with the label selector."""
        nodes = [V1Node(metadata=V1ObjectMeta(name="cp-1"))]
        k8s_client.core_v1.list_node.return_value = V1NodeList(items=nodes)

        result = k8s_client.get_nodes(label_selector="node-role.kubernetes.io/master=")

        assert result == nodes
        k8s_client.core_v1.list_node.assert_called_once_with(
            label_selector="node-role.kubernetes.io/master="
        )

    def test_get_nodes_api_error(self, k8s_client: KubernetesClient) -> None:
        """Test an API error raises KubernetesError."""
        k8s_client.core_v1.list_node.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(KubernetesError, match="Forbidden"):
            k8s_client.get_nodes()


class TestGetPod:
    """Tests for get_pod."""

    def test_get_pod(self, k8s_client: KubernetesClient) -> None:
        """Test a pod is read by name and namespace."""
        pod = V1Pod(metadata=V1ObjectMeta(name="etcd-cp-1", namespace="kube-system"))
        k8s_client.core_v1.read_namespaced_pod.return_value = pod

        assert k8s_client.get_pod("etcd-cp-1", "kube-system") is pod
        k8s_client.core_v1.read_namespaced_pod.assert_called_once_with(
            name="etcd-cp-1", namespace="kube-system"
        )

    def test_get_pod_not_found(self, k8s_client: KubernetesClient) -> None:
        """Test a 404 raises KubernetesNotFoundError."""
        k8s_client.core_v1.read_namespaced_pod.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(KubernetesNotFoundError, match='pods "etcd-cp-1" not found'):
            k8s_client.get_pod("etcd-cp-1", "kube-system")

    def test_get_pod_other_error(self, k8s_client: KubernetesClient) -> None:
        """Test other API errors are not reported as not found."""
        k8s_client.core_v1.read_namespaced_pod.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )

        with pytest.raises(KubernetesError) as exc_info:
            k8s_client.get_pod("etcd-cp-1", "kube-system")

        assert not isinstance(exc_info.value, KubernetesNotFoundError)


class TestGetSecretData:
    """Tests for get_secret_data."""

    def test_decodes_data(self, k8s_client: KubernetesClient) -> None:
        """Test secret values are base64 decoded."""
        k8s_client.core_v1.read_namespaced_secret.return_value = V1Secret(
            data={
                "tls.crt": base64.b64encode(b"cert").decode(),
                "tls.key": base64.b64encode(b"key").decode(),
            }
        )

        data = k8s_client.get_secret_data("workload-etcd", "default")

        assert data == {"tls.crt": b"cert", "tls.key": b"key"}

    def test_empty_secret(self, k8s_client: KubernetesClient) -> None:
        """Test a secret without data decodes to an empty mapping."""
        k8s_client.core_v1.read_namespaced_secret.return_value = V1Secret(data=None)

        assert k8s_client.get_secret_data("workload-etcd", "default") == {}

    def test_not_found(self, k8s_client: KubernetesClient) -> None:
        """Test a 404 raises KubernetesNotFoundError."""
        k8s_client.core_v1.read_namespaced_secret.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(KubernetesNotFoundError):
            k8s_client.get_secret_data("workload-etcd", "default")

    def test_invalid_encoding(self, k8s_client: KubernetesClient) -> None:
        """Test undecodable data raises KubernetesError."""
        k8s_client.core_v1.read_namespaced_secret.return_value = V1Secret(
            data={"tls.crt": "not base64!"}
        )

        with pytest.raises(KubernetesError, match="Failed to decode secret"):
            k8s_client.get_secret_data("workload-etcd", "default")


class TestListCustomObjects:
    """Tests for list_custom_objects."""

    def test_list(self, k8s_client: KubernetesClient) -> None:
        """Test the items of the list response are returned."""
        items = [{"metadata": {"name": "m1"}}]
        k8s_client.custom_objects.list_namespaced_custom_object.return_value = {"items": items}

        result = k8s_client.list_custom_objects(
            "cluster.x-k8s.io",
            "v1alpha3",
            "machines",
            "default",
            "cluster.x-k8s.io/cluster-name=workload",
        )

        assert result == items
        k8s_client.custom_objects.list_namespaced_custom_object.assert_called_once_with(
            group="cluster.x-k8s.io",
            version="v1alpha3",
            namespace="default",
            plural="machines",
            label_selector="cluster.x-k8s.io/cluster-name=workload",
        )

    def test_list_api_error(self, k8s_client: KubernetesClient) -> None:
        """Test an API error raises KubernetesError."""
        k8s_client.custom_objects.list_namespaced_custom_object.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(KubernetesError, match="Failed to list machines"):
            k8s_client.list_custom_objects("cluster.x-k8s.io", "v1alpha3", "machines", "default")
