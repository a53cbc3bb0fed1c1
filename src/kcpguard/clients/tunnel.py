"""Byte-stream tunnels to pods through the Kubernetes API server.

Pod IPs of a target cluster are not routable from the management cluster,
so connections are opened with the API server's port-forward subresource.
Clients that can only dial a host and port reach the tunnel through a
loopback ``TunnelListener``.
"""

import contextlib
import socket
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from kubernetes import client
from kubernetes.client.exceptions import ApiException
from kubernetes.stream import portforward
from websocket import WebSocketBadStatusException

from kcpguard.interfaces.exceptions import TunnelError
from kcpguard.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_KINDS = ("pods",)
LOOPBACK_HOST = "127.0.0.1"
ACCEPT_POLL_INTERVAL = 0.2
RELAY_BUFFER_SIZE = 64 * 1024


@dataclass
class Proxy:
    """Target of a tunnel: one port of one resource in the target cluster."""

    kind: str
    namespace: str
    resource_name: str
    port: int
    kube_config: client.Configuration


class Dialer(Protocol):
    """Opens byte streams to a fixed tunnel target."""

    def dial(self) -> socket.socket:
        """Open a new connection to the tunnel target."""
        ...

    def close(self) -> None:
        """Release resources shared by all connections."""
        ...


DialerFactory = Callable[[Proxy], Dialer]


def handshake_status(error: ApiException) -> int | None:
    """Get the HTTP status of a failed port-forward handshake.

    The stream module reports every websocket failure as an ApiException
    with status 0; the handshake response is on the chained exception.
    """
    if error.status:
        return error.status
    cause = error.__cause__ or error.__context__
    if isinstance(cause, WebSocketBadStatusException):
        return cause.status_code
    return None


class PortForwardDialer:
    """Dialer using the API server port-forward websocket."""

    def __init__(self, proxy: Proxy):
        """Initialize dialer.

        Args:
            proxy: Tunnel target and REST connection profile
        """
        self.proxy = proxy
        self.api_client = client.ApiClient(proxy.kube_config)
        self.core_v1 = client.CoreV1Api(self.api_client)

    def dial(self) -> socket.socket:
        """Open a port-forward stream to the target pod port.

        Returns:
            Socket connected to the pod port

        Raises:
            TunnelError: If the tunnel cannot be established
        """
        proxy = self.proxy
        logger.debug(
            "opening_tunnel",
            namespace=proxy.namespace,
            resource=proxy.resource_name,
            port=proxy.port,
        )

        try:
            forward = portforward(
                self.core_v1.connect_get_namespaced_pod_portforward,
                proxy.resource_name,
                proxy.namespace,
                ports=str(proxy.port),
            )
        except ApiException as e:
            status = handshake_status(e)
            logger.error(
                "tunnel_failed",
                namespace=proxy.namespace,
                resource=proxy.resource_name,
                status=status,
                reason=e.reason,
            )
            if status == 404:
                raise TunnelError(
                    f'{proxy.kind} "{proxy.resource_name}" not found in namespace {proxy.namespace}'
                ) from e
            raise TunnelError(
                f"Failed to open tunnel to {proxy.namespace}/{proxy.resource_name}: {e.reason}"
            ) from e
        except Exception as e:
            logger.error(
                "tunnel_failed",
                namespace=proxy.namespace,
                resource=proxy.resource_name,
                error=str(e),
            )
            raise TunnelError(
                f"Failed to open tunnel to {proxy.namespace}/{proxy.resource_name}: {e}"
            ) from e

        error = forward.error(proxy.port)
        if error:
            raise TunnelError(
                f"Port {proxy.port} of {proxy.namespace}/{proxy.resource_name} rejected: {error}"
            )

        return forward.socket(proxy.port)

    def close(self) -> None:
        """Close the API client used to open tunnels."""
        self.api_client.close()


def new_dialer(proxy: Proxy) -> PortForwardDialer:
    """Create a dialer for a tunnel target.

    Args:
        proxy: Tunnel target

    Returns:
        Dialer for the target

    Raises:
        TunnelError: If the target kind cannot be tunneled to
    """
    if proxy.kind not in SUPPORTED_KINDS:
        raise TunnelError(f"Unsupported proxy kind {proxy.kind!r}")
    if proxy.port <= 0:
        raise TunnelError(f"Invalid proxy port {proxy.port}")
    return PortForwardDialer(proxy)


def _relay(source: socket.socket, destination: socket.socket) -> None:
    """Copy bytes from source to destination until either side closes."""
    try:
        while data := source.recv(RELAY_BUFFER_SIZE):
            destination.sendall(data)
    except OSError as e:
        logger.debug("tunnel_relay_interrupted", error=str(e))
    finally:
        with contextlib.suppress(OSError):
            destination.shutdown(socket.SHUT_WR)


class TunnelListener:
    """Loopback TCP endpoint relaying each accepted connection through a tunnel.

    The first tunnel is dialed by ``open()`` so that an unreachable target
    fails there; later connections dial on accept. ``close()`` may be called
    from any thread, also while ``open()`` is still dialing.
    """

    def __init__(self, dialer: Dialer, host: str = LOOPBACK_HOST):
        """Initialize listener.

        Args:
            dialer: Opens tunnels; owned and closed by the listener
            host: Loopback address to listen on
        """
        self.dialer = dialer
        self.host = host
        self._lock = threading.Lock()
        self._closed = False
        self._server: socket.socket | None = None
        self._pending: socket.socket | None = None
        self._sockets: list[socket.socket] = []

    @property
    def port(self) -> int:
        """Get the local port clients connect to."""
        if self._server is None:
            raise TunnelError("Tunnel listener is not open")
        return self._server.getsockname()[1]

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def open(self) -> int:
        """Dial the first tunnel and start accepting local connections.

        Returns:
            Local port clients connect to

        Raises:
            TunnelError: If the tunnel cannot be established or the
                listener was closed while dialing
        """
        upstream = self.dialer.dial()
        try:
            server = socket.create_server((self.host, 0))
        except OSError as e:
            upstream.close()
            raise TunnelError(f"Failed to listen on {self.host}: {e}") from e
        server.settimeout(ACCEPT_POLL_INTERVAL)

        with self._lock:
            if self._closed:
                upstream.close()
                server.close()
                raise TunnelError("Tunnel listener closed while connecting")
            self._pending = upstream
            self._server = server
        port = server.getsockname()[1]

        threading.Thread(target=self._serve, name="kcpguard-tunnel", daemon=True).start()
        logger.debug("tunnel_listener_opened", host=self.host, port=port)
        return port

    def _take_upstream(self) -> socket.socket:
        with self._lock:
            upstream, self._pending = self._pending, None
        return upstream or self.dialer.dial()

    def _serve(self) -> None:
        server = self._server
        while not self._closed:
            try:
                local, _ = server.accept()
            except TimeoutError:
                continue
            except OSError:
                break

            try:
                upstream = self._take_upstream()
            except TunnelError as e:
                logger.warning("tunnel_redial_failed", error=str(e))
                local.close()
                continue

            with self._lock:
                if self._closed:
                    local.close()
                    upstream.close()
                    break
                self._sockets.extend((local, upstream))

            for source, destination in ((local, upstream), (upstream, local)):
                threading.Thread(
                    target=_relay, args=(source, destination), name="kcpguard-relay", daemon=True
                ).start()

    def close(self) -> None:
        """Stop accepting, close every relayed connection and the dialer."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sockets = [s for s in (self._server, self._pending, *self._sockets) if s is not None]
            self._pending = None
            self._sockets = []

        for sock in sockets:
            with contextlib.suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            sock.close()
        self.dialer.close()
        logger.debug("tunnel_listener_closed", host=self.host)

    def __enter__(self) -> "TunnelListener":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
