"""Operations on a target (workload) cluster."""

import asyncio

from kubernetes.client import Configuration

from kcpguard.adapters.etcd_adapter import EtcdAdapter
from kcpguard.checks.static_pods import static_pod_name
from kcpguard.clients.etcd_client import EtcdClient
from kcpguard.clients.tunnel import DialerFactory, Proxy, new_dialer
from kcpguard.core.config import KcpGuardConfig
from kcpguard.core.exceptions import EtcdError
from kcpguard.interfaces.etcd_provider import EtcdProvider
from kcpguard.interfaces.exceptions import EtcdClientError, TunnelError
from kcpguard.interfaces.kubernetes_provider import KubernetesProvider, NodeInfo
from kcpguard.utils.certs import ClientCertBundle, generate_client_cert
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)


class TargetCluster:
    """Access to one target cluster for the duration of a health check.

    Holds the API provider for the target cluster, the REST connection
    profile used to open tunnels, and the etcd CA material read from the
    management cluster. Instances are built per invocation and discarded.
    """

    def __init__(
        self,
        kubernetes: KubernetesProvider,
        rest_config: Configuration,
        etcd_ca_cert: bytes,
        etcd_ca_key: bytes,
        config: KcpGuardConfig | None = None,
        dialer_factory: DialerFactory = new_dialer,
    ):
        """Initialize target cluster.

        Args:
            kubernetes: Provider bound to the target cluster
            rest_config: REST connection profile of the target cluster
            etcd_ca_cert: PEM encoded etcd CA certificate
            etcd_ca_key: PEM encoded etcd CA private key
            config: KCP-GUARD configuration
            dialer_factory: Builds tunnels to pods in the target cluster
        """
        self.kubernetes = kubernetes
        self.rest_config = rest_config
        self.etcd_ca_cert = etcd_ca_cert
        self.etcd_ca_key = etcd_ca_key
        self.config = config or KcpGuardConfig()
        self.dialer_factory = dialer_factory

    async def get_control_plane_nodes(self) -> list[NodeInfo]:
        """List nodes carrying the control plane role label.

        Raises:
            KubernetesProviderError: If nodes cannot be listed
        """
        selector = f"{self.config.kubeadm.control_plane_node_label}="
        return await self.kubernetes.get_nodes(label_selector=selector)

    def generate_etcd_tls_client_bundle(self) -> ClientCertBundle:
        """Mint a client identity from this cluster's etcd CA.

        Raises:
            CertificateError: If the CA material is invalid
        """
        return generate_client_cert(self.etcd_ca_cert, self.etcd_ca_key)

    async def get_etcd_client_for_node(
        self,
        node_name: str,
        bundle: ClientCertBundle,
    ) -> EtcdProvider:
        """Connect to the etcd static pod scheduled on a node.

        External etcd is not supported: there is no such pod and the tunnel
        fails with a not found error.

        Args:
            node_name: Control plane node name
            bundle: Client identity for etcd

        Returns:
            Connected etcd provider

        Raises:
            EtcdClientError: If the tunnel or etcd client cannot be created
            CertificateError: If the client bundle cannot be used
        """
        etcd_config = self.config.etcd
        proxy = Proxy(
            kind="pods",
            namespace=self.config.kubeadm.system_namespace,
            resource_name=static_pod_name(etcd_config.pod_component, node_name),
            port=etcd_config.port,
            kube_config=self.rest_config,
        )

        try:
            dialer = self.dialer_factory(proxy)
        except TunnelError as e:
            logger.warning("etcd_tunnel_creation_failed", node=node_name, error=str(e))
            raise EtcdClientError(str(e)) from e

        client = EtcdClient(endpoint=etcd_config.endpoint_host, dialer=dialer, bundle=bundle)
        try:
            await asyncio.to_thread(client.connect)
        except (TunnelError, EtcdError) as e:
            client.close()
            logger.warning("etcd_client_creation_failed", node=node_name, error=str(e))
            raise EtcdClientError(str(e)) from e
        except BaseException:
            # Also reached on cancellation; a connect still running in its
            # worker thread sees the client closed and releases the tunnel.
            client.close()
            raise

        logger.debug("etcd_client_created", node=node_name, pod=proxy.resource_name)
        return EtcdAdapter(client)
