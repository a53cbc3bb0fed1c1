"""Unit tests for KubeconfigSecretConnector."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from kcpguard.adapters.k8s_adapter import KubernetesAdapter
from kcpguard.cluster.remote import KubeconfigSecretConnector
from kcpguard.core.models import ClusterKey
from kcpguard.interfaces.exceptions import RemoteClusterError, ResourceNotFoundError

KUBECONFIG = b"""
apiVersion: v1
kind: Config
clusters:
- name: workload
  cluster:
    server: https://workload.example.com:6443
    insecure-skip-tls-verify: true
contexts:
- name: workload-admin@workload
  context:
    cluster: workload
    user: workload-admin
current-context: workload-admin@workload
users:
- name: workload-admin
  user:
    token: abc123
"""


@pytest.fixture
def mock_store() -> MagicMock:
    """Provide an object store holding the workload kubeconfig secret."""
    store = MagicMock()
    store.get_secret = AsyncMock(return_value={"value": KUBECONFIG})
    return store


@pytest.fixture
def connector(mock_store: MagicMock) -> KubeconfigSecretConnector:
    """Provide a connector over the mock store."""
    return KubeconfigSecretConnector(mock_store)


class TestRestConfig:
    """Tests for KubeconfigSecretConnector.rest_config."""

    @pytest.mark.asyncio
    async def test_loads_kubeconfig(
        self,
        connector: KubeconfigSecretConnector,
        mock_store: MagicMock,
        cluster_key: ClusterKey,
    ) -> None:
        """Test the REST profile is built from the <cluster>-kubeconfig secret."""
        rest_config = await connector.rest_config(cluster_key)

        assert rest_config.host == "https://workload.example.com:6443"
        mock_store.get_secret.assert_awaited_once_with("workload-kubeconfig", "default")

    @pytest.mark.asyncio
    async def test_secret_not_found(
        self,
        connector: KubeconfigSecretConnector,
        mock_store: MagicMock,
        cluster_key: ClusterKey,
    ) -> None:
        """Test a missing secret raises RemoteClusterError."""
        mock_store.get_secret.side_effect = ResourceNotFoundError("not found")

        with pytest.raises(RemoteClusterError, match="default/workload-kubeconfig not found"):
            await connector.rest_config(cluster_key)

    @pytest.mark.asyncio
    async def test_missing_value_key(
        self,
        connector: KubeconfigSecretConnector,
        mock_store: MagicMock,
        cluster_key: ClusterKey,
    ) -> None:
        """Test a secret without the kubeconfig key raises RemoteClusterError."""
        mock_store.get_secret.return_value = {"other": b""}

        with pytest.raises(RemoteClusterError, match="has no 'value' key"):
            await connector.rest_config(cluster_key)

    @pytest.mark.asyncio
    async def test_invalid_kubeconfig(
        self,
        connector: KubeconfigSecretConnector,
        mock_store: MagicMock,
        cluster_key: ClusterKey,
    ) -> None:
        """Test an unusable kubeconfig raises RemoteClusterError."""
        mock_store.get_secret.return_value = {"value": b"apiVersion: v1\nkind: Config\n"}

        with pytest.raises(RemoteClusterError, match="invalid kubeconfig"):
            await connector.rest_config(cluster_key)


class TestConnect:
    """Tests for KubeconfigSecretConnector.connect."""

    @pytest.mark.asyncio
    async def test_connect(
        self, connector: KubeconfigSecretConnector, cluster_key: ClusterKey
    ) -> None:
        """Test the remote cluster provider is bound to the target API server."""
        remote = await connector.connect(cluster_key)

        assert isinstance(remote.kubernetes, KubernetesAdapter)
        assert remote.rest_config.host == "https://workload.example.com:6443"
        api_client = remote.kubernetes.client.api_client
        assert api_client.configuration.host == "https://workload.example.com:6443"
