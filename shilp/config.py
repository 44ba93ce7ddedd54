"""Shilp client configuration system with YAML support."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


# Default paths
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "shilp" / "config.yaml"
DEFAULT_CHECKPOINT_PATH = str(Path.home() / ".local" / "state" / "shilp" / "checkpoint.json")
DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_DISCOVERY_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 30.0
DEFAULT_UNREGISTER_PATH = "/api/oplog/v1/register"


@dataclass
class ServerConfig:
    """Shilp API server connection settings."""
    base_url: str = DEFAULT_SERVER_URL
    timeout_seconds: float = DEFAULT_TIMEOUT


@dataclass
class DiscoveryConfig:
    """Discovery control-plane connection settings."""
    base_url: str = DEFAULT_DISCOVERY_URL
    timeout_seconds: float = DEFAULT_TIMEOUT


@dataclass
class ReplicaConfig:
    """Oplog follower settings."""
    replica_id: str = ""
    collection: str = ""
    batch_size: int = 100
    poll_interval_seconds: float = 1.0
    checkpoint_path: str = DEFAULT_CHECKPOINT_PATH
    unregister_path: str = DEFAULT_UNREGISTER_PATH


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"


@dataclass
class ShilpConfig:
    """Complete client configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    replica: ReplicaConfig = field(default_factory=ReplicaConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> "ShilpConfig":
        """Create configuration with sensible defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShilpConfig":
        """Create configuration from dictionary."""
        server_data = data.get("server") or {}
        server = ServerConfig(
            base_url=server_data.get("base_url", DEFAULT_SERVER_URL),
            timeout_seconds=float(server_data.get("timeout_seconds", DEFAULT_TIMEOUT)),
        )

        discovery_data = data.get("discovery") or {}
        discovery = DiscoveryConfig(
            base_url=discovery_data.get("base_url", DEFAULT_DISCOVERY_URL),
            timeout_seconds=float(discovery_data.get("timeout_seconds", DEFAULT_TIMEOUT)),
        )

        replica_data = data.get("replica") or {}
        replica = ReplicaConfig(
            replica_id=replica_data.get("replica_id", ""),
            collection=replica_data.get("collection", ""),
            batch_size=int(replica_data.get("batch_size", 100)),
            poll_interval_seconds=float(replica_data.get("poll_interval_seconds", 1.0)),
            checkpoint_path=replica_data.get("checkpoint_path", DEFAULT_CHECKPOINT_PATH),
            unregister_path=replica_data.get("unregister_path", DEFAULT_UNREGISTER_PATH),
        )

        logging_data = data.get("logging") or {}
        logging_config = LoggingConfig(level=str(logging_data.get("level", "INFO")).upper())

        return cls(server=server, discovery=discovery, replica=replica, logging=logging_config)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ShilpConfig":
        """Load configuration from YAML file."""
        path = Path(path)

        if not path.exists():
            return cls.default()

        data = yaml.safe_load(path.read_text()) or {}
        return cls.from_dict(data)

    def apply_env(self, environ: dict[str, str] | None = None) -> "ShilpConfig":
        """Override settings from SHILP_* environment variables."""
        environ = os.environ if environ is None else environ

        if environ.get("SHILP_URL"):
            self.server.base_url = environ["SHILP_URL"]
        if environ.get("SHILP_DISCOVERY_URL"):
            self.discovery.base_url = environ["SHILP_DISCOVERY_URL"]
        if environ.get("SHILP_TIMEOUT"):
            timeout = float(environ["SHILP_TIMEOUT"])
            self.server.timeout_seconds = timeout
            self.discovery.timeout_seconds = timeout
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "server": {
                "base_url": self.server.base_url,
                "timeout_seconds": self.server.timeout_seconds,
            },
            "discovery": {
                "base_url": self.discovery.base_url,
                "timeout_seconds": self.discovery.timeout_seconds,
            },
            "replica": {
                "replica_id": self.replica.replica_id,
                "collection": self.replica.collection,
                "batch_size": self.replica.batch_size,
                "poll_interval_seconds": self.replica.poll_interval_seconds,
                "checkpoint_path": self.replica.checkpoint_path,
                "unregister_path": self.replica.unregister_path,
            },
            "logging": {
                "level": self.logging.level,
            },
        }

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)


def load_config(path: Path | str | None = None) -> ShilpConfig:
    """
    Load configuration from file or environment.

    Priority:
    1. Explicit path argument
    2. SHILP_CONFIG environment variable
    3. ~/.config/shilp/config.yaml
    4. Default configuration

    SHILP_URL, SHILP_DISCOVERY_URL and SHILP_TIMEOUT override whatever
    was loaded.
    """
    if path is not None:
        config = ShilpConfig.from_yaml(path)
    elif os.environ.get("SHILP_CONFIG"):
        config = ShilpConfig.from_yaml(os.environ["SHILP_CONFIG"])
    elif DEFAULT_CONFIG_PATH.exists():
        config = ShilpConfig.from_yaml(DEFAULT_CONFIG_PATH)
    else:
        config = ShilpConfig.default()

    return config.apply_env()


def create_default_config(path: Path | str | None = None) -> Path:
    """Create default configuration file."""
    path = Path(path) if path else DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    config = ShilpConfig.default()
    path.write_text(config.to_yaml())

    return path
