"""
config_manager.py: module for merging the allocator settings from multiple
sources
"""
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import dotenv_values

from .config import load_user_config

ENV_PREFIX = "SPREAD_ADHOC_"


class ConfigSource(Enum):
    """Enumeration of configuration sources"""
    DEFAULTS = "defaults"
    USER_CONFIG = "user_config"  # settings: in ~/.config/spread-adhoc-allocator/config.yaml
    DOTENV = "dotenv"  # .env file in current directory
    ENVIRONMENT = "environment"  # SPREAD_ADHOC_* environment variables


class ConfigManager:
    """
    ConfigManager: class that merges settings from all sources, later sources
    in the priority order win
    """

    def __init__(self, user_config: Optional[Dict[str, Any]] = None,
                 dotenv_path: Optional[Path] = None,
                 environ: Optional[Dict[str, str]] = None):
        self.user_config = user_config
        self.dotenv_path = dotenv_path or Path.cwd() / ".env"
        self.environ = os.environ if environ is None else environ
        self.config_data = {}
        self.priority_order = [
            ConfigSource.DEFAULTS,
            ConfigSource.USER_CONFIG,
            ConfigSource.DOTENV,
            ConfigSource.ENVIRONMENT,
        ]

    def load_config(self) -> Dict[str, Any]:
        """Load configuration following priority order"""
        self.config_data = {}
        for source in self.priority_order:
            self.config_data.update(self._load_single_source(source))
        return self.config_data

    def _load_single_source(self, source: ConfigSource) -> Dict[str, Any]:
        if source == ConfigSource.DEFAULTS:
            return self._get_defaults()
        elif source == ConfigSource.USER_CONFIG:
            return self._load_user_config()
        elif source == ConfigSource.DOTENV:
            return self._load_dotenv_config()
        elif source == ConfigSource.ENVIRONMENT:
            return self._from_env_vars(self.environ)
        return {}

    def _get_defaults(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {
            "lxc_command": "lxc",
            "project": "spread-adhoc",
            "poll_interval": 0.5,
            "address_timeout": 60,
            "ssh_port": 22,
            "log_level": "INFO",
        }

    def _load_user_config(self) -> Dict[str, Any]:
        user_config = self.user_config
        if user_config is None:
            user_config = load_user_config()
        return dict(user_config.get("settings") or {})

    def _load_dotenv_config(self) -> Dict[str, Any]:
        if not self.dotenv_path.exists():
            return {}
        return self._from_env_vars(dotenv_values(self.dotenv_path))

    def _from_env_vars(self, env: Dict[str, Optional[str]]) -> Dict[str, Any]:
        # SPREAD_ADHOC_LXC is the name of the lxc binary, the rest map directly
        env_mapping = {
            f"{ENV_PREFIX}LXC": "lxc_command",
            f"{ENV_PREFIX}PROJECT": "project",
            f"{ENV_PREFIX}POLL_INTERVAL": "poll_interval",
            f"{ENV_PREFIX}ADDRESS_TIMEOUT": "address_timeout",
            f"{ENV_PREFIX}LOG_LEVEL": "log_level",
        }
        return {
            config_key: env[env_key]
            for env_key, config_key in env_mapping.items()
            if env.get(env_key)
        }

    def get_config(self, key: str, default: Any = None):
        """Get a specific configuration value"""
        return self.config_data.get(key, default)
