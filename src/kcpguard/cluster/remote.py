"""Target cluster access from kubeconfig secrets in the management cluster."""

import yaml
from kubernetes import client, config

from kcpguard.adapters.k8s_adapter import KubernetesAdapter
from kcpguard.clients.kubernetes_client import KubernetesClient
from kcpguard.core.config import KubeadmConfig
from kcpguard.core.models import ClusterKey
from kcpguard.interfaces.exceptions import RemoteClusterError, ResourceNotFoundError
from kcpguard.interfaces.kubernetes_provider import ObjectStore
from kcpguard.interfaces.remote_cluster import RemoteCluster, RemoteClusterProvider
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)


class KubeconfigSecretConnector(RemoteClusterProvider):
    """Builds target cluster access from the ``<cluster>-kubeconfig`` secret."""

    def __init__(self, object_store: ObjectStore, kubeadm_config: KubeadmConfig | None = None):
        """Initialize connector.

        Args:
            object_store: Management cluster object store holding the secret
            kubeadm_config: Secret naming conventions
        """
        self.object_store = object_store
        self.kubeadm_config = kubeadm_config or KubeadmConfig()

    async def rest_config(self, cluster_key: ClusterKey) -> client.Configuration:
        """Get the REST connection profile of a target cluster.

        Args:
            cluster_key: Target cluster

        Returns:
            Client configuration for the target API server

        Raises:
            RemoteClusterError: If the kubeconfig is missing or invalid
        """
        secrets = self.kubeadm_config.secrets
        secret_name = f"{cluster_key.name}-{secrets.kubeconfig_suffix}"

        try:
            data = await self.object_store.get_secret(secret_name, cluster_key.namespace)
        except ResourceNotFoundError as e:
            raise RemoteClusterError(
                f"kubeconfig secret {cluster_key.namespace}/{secret_name} not found"
            ) from e

        kubeconfig = data.get(secrets.kubeconfig_data_key)
        if kubeconfig is None:
            raise RemoteClusterError(
                f"kubeconfig secret {cluster_key.namespace}/{secret_name} has no "
                f"{secrets.kubeconfig_data_key!r} key"
            )

        configuration = client.Configuration()
        try:
            config.load_kube_config_from_dict(
                yaml.safe_load(kubeconfig),
                client_configuration=configuration,
                persist_config=False,
            )
        except (yaml.YAMLError, config.ConfigException, TypeError, ValueError) as e:
            logger.error("kubeconfig_load_failed", cluster=str(cluster_key), error=str(e))
            raise RemoteClusterError(f"invalid kubeconfig for cluster {cluster_key}: {e}") from e

        return configuration

    async def connect(self, cluster_key: ClusterKey) -> RemoteCluster:
        """Build API access for a target cluster.

        Args:
            cluster_key: Target cluster

        Returns:
            RemoteCluster with a provider bound to the target cluster

        Raises:
            RemoteClusterError: If access cannot be established
        """
        rest_config = await self.rest_config(cluster_key)

        try:
            kubernetes = KubernetesAdapter(
                client=KubernetesClient(api_client=client.ApiClient(rest_config)),
                kubeadm_config=self.kubeadm_config,
            )
        except Exception as e:
            raise RemoteClusterError(
                f"failed to create client for cluster {cluster_key}: {e}"
            ) from e

        logger.debug("remote_cluster_connected", cluster=str(cluster_key), host=rest_config.host)
        return RemoteCluster(kubernetes=kubernetes, rest_config=rest_config)
