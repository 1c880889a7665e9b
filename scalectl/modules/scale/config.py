"""Deployment configuration management.

Configuration is loaded with the following precedence:
1. Environment variables (SSH user/key, broadcast transport)
2. The configuration file (explicit path, or the first default path found)
3. Default values, which describe a ten-node cluster
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError
from .models import Node, NsdEntry

logger = logging.getLogger("scale.config")

DEFAULT_CONFIG_PATHS = [
    Path("/etc/scalectl/config.yaml"),
    Path("~/.config/scalectl/config.yaml"),
    Path("scalectl.yaml"),
]


class NodeConfig(BaseModel):
    """A node and its roles; storage nodes also carry a device."""
    model_config = ConfigDict(extra="forbid")

    name: str
    quorum: bool = False
    manager: bool = False
    gui: bool = False
    device: Optional[str] = None
    failure_group: Optional[int] = None

    @field_validator('failure_group')
    @classmethod
    def check_failure_group(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("failure_group must be a positive integer")
        return v

    @model_validator(mode='after')
    def check_storage_pair(self) -> 'NodeConfig':
        if (self.device is None) != (self.failure_group is None):
            raise ValueError(f"node {self.name}: device and failure_group must be set together")
        return self


def _default_nodes() -> List[NodeConfig]:
    return [
        NodeConfig(
            name=f"node{i}",
            quorum=i <= 5,
            manager=True,
            gui=i == 10,
            device="/dev/xi_raid5",
            failure_group=101 if i % 2 else 102,
        )
        for i in range(1, 11)
    ]


class ClusterSettings(BaseModel):
    """Cluster topology."""
    name: Optional[str] = Field(default=None, description="Cluster name passed to toolkit setup")
    mgmt_ip: str = Field(default="10.241.128.39", description="Management address of the install node")
    nodes: List[NodeConfig] = Field(default_factory=_default_nodes)

    @field_validator('nodes')
    @classmethod
    def check_nodes(cls, v: List[NodeConfig]) -> List[NodeConfig]:
        if not v:
            raise ValueError("at least one node is required")
        names = [n.name for n in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate node names: {', '.join(duplicates)}")
        if not any(n.quorum for n in v):
            raise ValueError("at least one quorum node is required")
        return v


class InstallerSettings(BaseModel):
    """Where the unpacked installer lives and what the nodes need."""
    directory: str = "/root/Storage_Scale_Developer-5-2"
    package_glob: str = "Storage_Scale_Developer-*install"
    checksum_glob: str = "Storage_Scale_Developer-*-install.md5"
    kernel_version: str = "5.14.0-427.77.1.el9_4.x86_64"
    codeready_repo: str = "codeready-builder-for-rhel-9-{arch}-rpms"
    local_packages: List[str] = Field(default_factory=lambda: ["unzip", "pdsh-rcmd-ssh"])
    remote_packages: List[str] = Field(default_factory=lambda: ["gcc-c++", "elfutils", "elfutils-devel"])


class ToolkitSettings(BaseModel):
    """Location of the spectrumscale install toolkit."""
    root: str = "/usr/lpp/mmfs"
    version: str = "5.2.3.2"

    @property
    def path(self) -> str:
        return f"{self.root}/{self.version}/ansible-toolkit/spectrumscale"


class SSHSettings(BaseModel):
    """SSH connection settings."""
    user: str = "root"
    port: int = 22
    key_path: Optional[str] = None
    connect_timeout: int = 30

    @field_validator('key_path')
    @classmethod
    def expand_key_path(cls, v: Optional[str]) -> Optional[str]:
        """Expand the user home directory in the key path."""
        return os.path.expanduser(v) if v else v


class BroadcastSettings(BaseModel):
    """How a command is sent to every node."""
    transport: Literal["pdsh", "threads"] = "pdsh"
    max_workers: int = Field(default=10, gt=0)


class GuiSettings(BaseModel):
    """GUI administrator created in the last phase."""
    mkuser: str = "/usr/lpp/mmfs/gui/cli/mkuser"
    username: str = "secadmin"
    group: str = "SecurityAdmin"


class HealthSettings(BaseModel):
    """Where health-check commands run when they are not installed locally."""
    node: Optional[str] = None
    bin_dir: str = "/usr/lpp/mmfs/bin"


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class DeployConfig(BaseModel):
    """Complete deployment configuration."""
    model_config = ConfigDict(extra="ignore")

    cluster: ClusterSettings = Field(default_factory=ClusterSettings)
    installer: InstallerSettings = Field(default_factory=InstallerSettings)
    toolkit: ToolkitSettings = Field(default_factory=ToolkitSettings)
    ssh: SSHSettings = Field(default_factory=SSHSettings)
    broadcast: BroadcastSettings = Field(default_factory=BroadcastSettings)
    gui: GuiSettings = Field(default_factory=GuiSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    nsddevices_path: str = "/var/mmfs/etc/nsddevices"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def nodes(self) -> List[Node]:
        return [Node(**n.model_dump()) for n in self.cluster.nodes]

    @property
    def node_names(self) -> List[str]:
        return [n.name for n in self.cluster.nodes]

    @property
    def nsd_mapping(self) -> List[NsdEntry]:
        """NSD entries in configuration order, one per storage node."""
        return [
            NsdEntry(node=n.name, device=n.device, failure_group=n.failure_group)
            for n in self.cluster.nodes
            if n.device is not None
        ]

    @property
    def health_node(self) -> str:
        """Diagnostic node; defaults to the first quorum node."""
        if self.health.node:
            return self.health.node
        return next(n.name for n in self.cluster.nodes if n.quorum)

    @classmethod
    def load(cls, config_path: Optional[Union[str, Path]] = None) -> 'DeployConfig':
        """Load configuration from file and environment variables."""
        config_data: Dict[str, Any] = {}

        if config_path:
            path = Path(config_path).expanduser().absolute()
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            config_data = cls._load_config_file(path)
        else:
            for path in DEFAULT_CONFIG_PATHS:
                path = path.expanduser().absolute()
                if path.exists():
                    config_data = cls._load_config_file(path)
                    break
            else:
                logger.debug("No configuration file found, using defaults")

        cls._apply_env_overrides(config_data)

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _load_config_file(cls, path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file."""
        logger.debug(f"Loading configuration from {path}")
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid config format in {path}: expected a mapping")
        return data

    @staticmethod
    def _apply_env_overrides(config_data: Dict[str, Any]) -> None:
        overrides = {
            ('ssh', 'user'): os.getenv("SCALECTL_SSH_USER"),
            ('ssh', 'key_path'): os.getenv("SCALECTL_SSH_KEY_PATH"),
            ('broadcast', 'transport'): os.getenv("SCALECTL_BROADCAST"),
        }
        for (section, key), value in overrides.items():
            if value:
                if not isinstance(config_data.get(section), dict):
                    config_data[section] = {}
                config_data[section][key] = value
