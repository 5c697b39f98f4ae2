"""
app_config.py: module for the allocator runtime settings
"""
from dataclasses import dataclass
from typing import Dict, Any

from .config_manager import ConfigManager
from .errors import ConfigError


@dataclass(frozen=True)
class AllocatorSettings:
    """
    AllocatorSettings: process wide constants of the allocator, injected into
    the backend when it is constructed
    """
    lxc_command: str = "lxc"
    project: str = "spread-adhoc"
    poll_interval: float = 0.5      # seconds between address polls
    address_timeout: float = 60.0   # seconds
    ssh_port: int = 22
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllocatorSettings":
        try:
            poll_interval = float(data.get("poll_interval", cls.poll_interval))
            address_timeout = float(data.get("address_timeout", cls.address_timeout))
            ssh_port = int(data.get("ssh_port", cls.ssh_port))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid settings: {e}") from e

        if poll_interval <= 0 or address_timeout <= 0:
            raise ConfigError("poll_interval and address_timeout must be positive")

        return cls(
            lxc_command=str(data.get("lxc_command", cls.lxc_command)),
            project=str(data.get("project", cls.project)),
            poll_interval=poll_interval,
            address_timeout=address_timeout,
            ssh_port=ssh_port,
            log_level=str(data.get("log_level", cls.log_level)).upper(),
        )

    @classmethod
    def load(cls, config_manager: ConfigManager = None) -> "AllocatorSettings":
        """Load settings following the config manager priority order"""
        config_manager = config_manager or ConfigManager()
        return cls.from_dict(config_manager.load_config())
