"""Management cluster operations used by control plane reconcilers."""

from kcpguard.adapters.k8s_adapter import KubernetesAdapter
from kcpguard.checks.control_plane import ControlPlaneHealthCheck
from kcpguard.checks.etcd import EtcdHealthCheck
from kcpguard.checks.orchestrator import HealthCheckOrchestrator
from kcpguard.clients.tunnel import DialerFactory, new_dialer
from kcpguard.cluster.remote import KubeconfigSecretConnector
from kcpguard.cluster.target import TargetCluster
from kcpguard.core.config import KcpGuardConfig
from kcpguard.core.exceptions import EtcdCAMalformedError, EtcdCANotFoundError
from kcpguard.core.models import ClusterKey, Machine
from kcpguard.interfaces.exceptions import ResourceNotFoundError
from kcpguard.interfaces.kubernetes_provider import ObjectStore
from kcpguard.interfaces.remote_cluster import RemoteClusterProvider
from kcpguard.machines.filters import MachineFilter, filter_machines
from kcpguard.utils.logging import get_logger, setup_logging_from_config

logger = get_logger(__name__)


class ManagementCluster:
    """Entry point for health checking the clusters a management cluster owns.

    Nothing is cached between calls: every health check resolves the target
    cluster and its etcd CA afresh.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        remote: RemoteClusterProvider | None = None,
        config: KcpGuardConfig | None = None,
        dialer_factory: DialerFactory = new_dialer,
    ):
        """Initialize management cluster.

        Args:
            object_store: Management cluster secrets and Machines
            remote: Resolves target cluster access (defaults to kubeconfig secrets)
            config: KCP-GUARD configuration
            dialer_factory: Builds tunnels into target clusters
        """
        self.config = config or KcpGuardConfig()
        self.object_store = object_store
        self.remote = remote or KubeconfigSecretConnector(object_store, self.config.kubeadm)
        self.dialer_factory = dialer_factory
        self.orchestrator = HealthCheckOrchestrator(
            self, control_plane_kind=self.config.kubeadm.control_plane_kind
        )

    @classmethod
    def from_config(cls, config: KcpGuardConfig) -> "ManagementCluster":
        """Build a management cluster from configuration.

        Args:
            config: KCP-GUARD configuration

        Returns:
            ManagementCluster using the configured kubeconfig

        Raises:
            KubernetesProviderError: If the management cluster client cannot be created
        """
        setup_logging_from_config(config.logging)
        adapter = KubernetesAdapter(
            kubeconfig_path=config.management.kubeconfig_path,
            context=config.management.context,
            kubeadm_config=config.kubeadm,
        )
        return cls(object_store=adapter, config=config)

    async def get_machines_for_cluster(
        self,
        cluster_key: ClusterKey,
        *filters: MachineFilter,
    ) -> list[Machine]:
        """Get the Machines of a cluster, optionally filtered.

        Usage: ``await m.get_machines_for_cluster(key, owned_control_plane_machines(name))``

        Args:
            cluster_key: Target cluster
            *filters: Predicates every returned Machine must satisfy

        Returns:
            Matching Machines; all Machines of the cluster if no filters are given

        Raises:
            KubernetesProviderError: If Machines cannot be listed
        """
        labels = {self.config.kubeadm.cluster_label: cluster_key.name}
        machines = await self.object_store.list_machines(cluster_key.namespace, labels)
        return filter_machines(machines, *filters)

    async def get_etcd_certs(self, cluster_key: ClusterKey) -> tuple[bytes, bytes]:
        """Get the etcd CA certificate and key of a cluster.

        Args:
            cluster_key: Target cluster

        Returns:
            Tuple of (PEM certificate, PEM private key)

        Raises:
            EtcdCANotFoundError: If the etcd CA secret does not exist
            EtcdCAMalformedError: If the secret lacks the certificate or key
            KubernetesProviderError: If the secret cannot be retrieved
        """
        secrets = self.config.kubeadm.secrets
        secret_name = f"{cluster_key.name}-{secrets.etcd_ca_suffix}"

        try:
            data = await self.object_store.get_secret(secret_name, cluster_key.namespace)
        except ResourceNotFoundError as e:
            raise EtcdCANotFoundError(
                f"failed to get secret; etcd CA bundle {cluster_key.namespace}/{secret_name}"
            ) from e

        crt_data = data.get(secrets.tls_crt_key)
        if crt_data is None:
            raise EtcdCAMalformedError(
                f"etcd tls crt does not exist for cluster {cluster_key}",
                field=secrets.tls_crt_key,
            )
        key_data = data.get(secrets.tls_key_key)
        if key_data is None:
            raise EtcdCAMalformedError(
                f"etcd tls key does not exist for cluster {cluster_key}",
                field=secrets.tls_key_key,
            )
        return crt_data, key_data

    async def get_target_cluster(self, cluster_key: ClusterKey) -> TargetCluster:
        """Resolve a cluster key into access to the target cluster.

        Args:
            cluster_key: Target cluster

        Returns:
            TargetCluster populated with the etcd CA needed for etcd connections

        Raises:
            RemoteClusterError: If the target cluster cannot be reached
            EtcdCAError: If the etcd CA cannot be loaded
        """
        remote = await self.remote.connect(cluster_key)
        etcd_ca_cert, etcd_ca_key = await self.get_etcd_certs(cluster_key)

        return TargetCluster(
            kubernetes=remote.kubernetes,
            rest_config=remote.rest_config,
            etcd_ca_cert=etcd_ca_cert,
            etcd_ca_key=etcd_ca_key,
            config=self.config,
            dialer_factory=self.dialer_factory,
        )

    async def target_cluster_control_plane_is_healthy(
        self,
        cluster_key: ClusterKey,
        control_plane_name: str,
    ) -> None:
        """Check every control plane node for static pod health.

        Raises:
            HealthCheckError: If the control plane is not healthy
        """
        cluster = await self.get_target_cluster(cluster_key)
        await self.orchestrator.run(
            ControlPlaneHealthCheck(cluster), cluster_key, control_plane_name
        )

    async def target_cluster_etcd_is_healthy(
        self,
        cluster_key: ClusterKey,
        control_plane_name: str,
    ) -> None:
        """Run the etcd checks on a target cluster.

        In addition it verifies there are as many etcd members as control
        plane Machines.

        Raises:
            HealthCheckError: If etcd is not healthy
        """
        cluster = await self.get_target_cluster(cluster_key)
        await self.orchestrator.run(EtcdHealthCheck(cluster), cluster_key, control_plane_name)
