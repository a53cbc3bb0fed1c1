"""Etcd v3 gRPC client reaching one member through a tunnel."""

import threading
from typing import Any

import etcd3
import grpc
from etcd3 import etcdrpc
from etcd3.exceptions import Etcd3Exception

from kcpguard.clients.tunnel import Dialer, TunnelListener
from kcpguard.core.exceptions import EtcdError
from kcpguard.utils.certs import ClientCertBundle
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)


def _describe(error: Exception) -> str:
    if isinstance(error, grpc.Call):
        return f"{error.code().name}: {error.details()}"
    return str(error)


class EtcdClient:
    """Etcd client bound to the member behind one tunnel.

    ``connect()`` opens a loopback listener relaying into the tunnel and
    points an ``etcd3`` client at it, authenticating with the client bundle.
    ``close()`` may run from another thread while ``connect()`` is still in
    progress; the connect then releases what it opened and fails.
    """

    def __init__(self, endpoint: str, dialer: Dialer, bundle: ClientCertBundle):
        """Initialize etcd client.

        Args:
            endpoint: Loopback host the etcd client dials; must be covered by
                the member's serving certificate
            dialer: Opens tunnels to the member's client port
            bundle: Client identity for mutual TLS
        """
        self.endpoint = endpoint
        self.bundle = bundle
        self.listener = TunnelListener(dialer, host=endpoint)
        self._lock = threading.Lock()
        self._closed = False
        self._client: etcd3.Etcd3Client | None = None

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def connect(self) -> None:
        """Open the tunnel and create the gRPC client.

        Raises:
            CertificateError: If the client bundle cannot be used
            TunnelError: If the tunnel cannot be established
            EtcdError: If the client cannot be created or was closed meanwhile
        """
        with self.bundle.pem_files() as files:
            port = self.listener.open()
            try:
                client = etcd3.client(
                    host=self.endpoint,
                    port=port,
                    ca_cert=files.ca_cert,
                    cert_key=files.key,
                    cert_cert=files.cert,
                )
            except (Etcd3Exception, grpc.RpcError, OSError, ValueError) as e:
                logger.error("etcd_connect_failed", endpoint=self.endpoint, error=_describe(e))
                raise EtcdError(f"Failed to create etcd client for {self.endpoint}: {e}") from e

        with self._lock:
            if not self._closed:
                self._client = client
                logger.debug("etcd_client_connected", endpoint=self.endpoint, port=port)
                return

        client.close()
        raise EtcdError("etcd client closed while connecting")

    def _connected(self) -> etcd3.Etcd3Client:
        if self._client is None:
            raise EtcdError("etcd client is not connected")
        return self._client

    def member_list(self) -> Any:
        """List cluster members.

        Returns:
            MemberListResponse with ``header.cluster_id`` and ``members``

        Raises:
            EtcdError: If the request fails
        """
        client = self._connected()
        try:
            return client.clusterstub.MemberList(etcdrpc.MemberListRequest(), client.timeout)
        except grpc.RpcError as e:
            logger.error("etcd_request_failed", request="member_list", error=_describe(e))
            raise EtcdError(f"etcd member list failed: {_describe(e)}") from e

    def alarm_list(self) -> list[Any]:
        """List active alarms of all members.

        Returns:
            Alarms with ``alarm_type`` and ``member_id``

        Raises:
            EtcdError: If the request fails
        """
        client = self._connected()
        try:
            return list(client.list_alarms())
        except (Etcd3Exception, grpc.RpcError) as e:
            logger.error("etcd_request_failed", request="alarm_list", error=_describe(e))
            raise EtcdError(f"etcd alarm list failed: {_describe(e)}") from e

    def close(self) -> None:
        """Close the gRPC channel and the tunnel. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            client, self._client = self._client, None

        if client is not None:
            client.close()
        self.listener.close()

    def __enter__(self) -> "EtcdClient":
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
