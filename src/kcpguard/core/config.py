"""Configuration management for KCP-GUARD."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from kcpguard.core.exceptions import ConfigurationError


class ManagementClusterConfig(BaseModel):
    """Management cluster access configuration."""

    kubeconfig_path: str | None = None
    context: str | None = None


class KubeadmConfig(BaseModel):
    """Cluster API and kubeadm conventions."""

    cluster_label: str = "cluster.x-k8s.io/cluster-name"
    control_plane_node_label: str = "node-role.kubernetes.io/master"
    control_plane_kind: str = "KubeadmControlPlane"
    system_namespace: str = "kube-system"

    class MachineAPIConfig(BaseModel):
        """Machine custom resource coordinates."""

        group: str = "cluster.x-k8s.io"
        version: str = "v1alpha3"
        plural: str = "machines"

    class SecretsConfig(BaseModel):
        """Secret naming conventions in the management cluster."""

        etcd_ca_suffix: str = "etcd"
        kubeconfig_suffix: str = "kubeconfig"
        kubeconfig_data_key: str = "value"
        tls_crt_key: str = "tls.crt"
        tls_key_key: str = "tls.key"

    machines: MachineAPIConfig = Field(default_factory=MachineAPIConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)


class EtcdConfig(BaseModel):
    """Etcd static pod connection configuration."""

    port: int = 2379
    endpoint_host: str = "127.0.0.1"
    pod_component: str = "etcd"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    output: str = "stdout"


class KcpGuardConfig(BaseModel):
    """Main KCP-GUARD configuration."""

    management: ManagementClusterConfig = Field(default_factory=ManagementClusterConfig)
    kubeadm: KubeadmConfig = Field(default_factory=KubeadmConfig)
    etcd: EtcdConfig = Field(default_factory=EtcdConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "KcpGuardConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            KcpGuardConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        try:
            return cls(**(data or {}))
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation
        """
        return self.model_dump()
