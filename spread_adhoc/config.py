"""
config.py: module for loading the backend configuration, i.e. the systems
that can be allocated and the setup steps applied to them
"""
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Any, List, Optional, Union, IO

import yaml

from .errors import ConfigError
from .models import NodeResources, SystemSpec, DEFAULT_MEMORY, DEFAULT_CPU, \
    DEFAULT_ROOT_SIZE

logger = logging.getLogger(__name__)

SPREAD_CONF_NAME = "spread.yaml"
BACKEND_CONF_NAME = "spread-lxd.yaml"
APP_NAME = "spread-adhoc-allocator"

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*([a-z]*)\s*$", re.IGNORECASE)
# bare and "B" suffixed prefixes are decimal, "i" marks the binary ones
_SIZE_UNITS = {
    "": 1, "b": 1,
    "k": 1000, "kb": 1000, "ki": 1024, "kib": 1024,
    "m": 1000 ** 2, "mb": 1000 ** 2, "mi": 1024 ** 2, "mib": 1024 ** 2,
    "g": 1000 ** 3, "gb": 1000 ** 3, "gi": 1024 ** 3, "gib": 1024 ** 3,
    "t": 1000 ** 4, "tb": 1000 ** 4, "ti": 1024 ** 4, "tib": 1024 ** 4,
    "p": 1000 ** 5, "pb": 1000 ** 5, "pi": 1024 ** 5, "pib": 1024 ** 5,
}


def config_file_name() -> str:
    """Returns the file name of the backend configuration."""
    return BACKEND_CONF_NAME


def parse_size(value: Union[int, str]) -> int:
    """
    parse_size: converts '4096MiB', '1.5 GiB', '2G' or a plain number to bytes
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid size: {value!r}")
    if isinstance(value, int):
        return value
    match = _SIZE_RE.match(str(value))
    if not match or match.group(2).lower() not in _SIZE_UNITS:
        raise ValueError(f"invalid size: {value!r}")
    number, unit = match.group(1), _SIZE_UNITS[match.group(2).lower()]
    if "." in number:
        return int(float(number) * unit)
    return int(number) * unit


@dataclass(frozen=True)
class BackendConfig:
    """
    BackendConfig: systems keyed by spread system name, and named lists of
    setup steps
    """
    system: Dict[str, SystemSpec] = field(default_factory=dict)
    setup: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "BackendConfig":
        if not isinstance(data, dict):
            raise ConfigError("document is not a mapping")
        if "system" not in data or "setup" not in data:
            raise ConfigError("document must contain 'system' and 'setup'")
        return cls(system=_parse_systems(data["system"]),
                   setup=_parse_setup(data["setup"]))

    def with_override(self, override: Optional[Dict[str, Any]]) -> "BackendConfig":
        """
        with_override: returns a new configuration where the systems and setup
        lists of the override replace, or add to, the ones of this config
        """
        if not override:
            return self
        if not isinstance(override, dict):
            raise ConfigError("override is not a mapping")

        system = dict(self.system)
        system.update(_parse_systems(override.get("system") or {}))
        setup = dict(self.setup)
        setup.update(_parse_setup(override.get("setup") or {}))
        return replace(self, system=system, setup=setup)

    def get_system(self, name: str) -> Optional[SystemSpec]:
        return self.system.get(name)

    def get_setup(self, name: str) -> Optional[List[str]]:
        return self.setup.get(name)


def _parse_systems(data: Any) -> Dict[str, SystemSpec]:
    if not isinstance(data, dict):
        raise ConfigError("'system' is not a mapping")
    return {str(name): _parse_system(str(name), entry) for name, entry in data.items()}


def _parse_system(name: str, entry: Any) -> SystemSpec:
    if not isinstance(entry, dict):
        raise ConfigError(f"system \"{name}\" is not a mapping")
    if not entry.get("image"):
        raise ConfigError(f"system \"{name}\" has no image")

    res = entry.get("resources") or {}
    if not isinstance(res, dict):
        raise ConfigError(f"resources of system \"{name}\" is not a mapping")

    try:
        resources = NodeResources(
            mem=parse_size(res.get("mem", DEFAULT_MEMORY)),
            cpu=int(res.get("cpu", DEFAULT_CPU)),
            size=parse_size(res.get("size", DEFAULT_ROOT_SIZE)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid resources of system \"{name}\": {e}") from e

    secure_boot = entry.get("secure-boot", False)
    vm = entry.get("vm", True)
    if not isinstance(secure_boot, bool) or not isinstance(vm, bool):
        raise ConfigError(f"'secure-boot' and 'vm' of system \"{name}\" must be booleans")

    setup_steps = entry.get("setup-steps")
    return SystemSpec(
        name=name,
        image=str(entry["image"]),
        setup_steps=str(setup_steps) if setup_steps is not None else None,
        resources=resources,
        secure_boot=secure_boot,
        vm=vm,
    )


def _parse_setup(data: Any) -> Dict[str, List[str]]:
    if not isinstance(data, dict):
        raise ConfigError("'setup' is not a mapping")
    setup = {}
    for name, steps in data.items():
        if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
            raise ConfigError(f"setup \"{name}\" is not a list of commands")
        setup[str(name)] = list(steps)
    return setup


def load_backend_config(stream: Union[str, IO]) -> BackendConfig:
    """
    load_backend_config: parses the backend configuration document
    """
    try:
        data = yaml.safe_load(stream)
    except yaml.YAMLError as e:
        raise ConfigError(str(e)) from e
    conf = BackendConfig.from_dict(data)
    logger.debug(f"config: {len(conf.system)} systems, {len(conf.setup)} setup lists")
    return conf


def locate(name: str, start: Optional[Path] = None) -> Path:
    """
    locate: finds the configuration file `name` which is expected next to
    spread.yaml, in the current directory or any of its parents
    """
    curdir = Path(start or Path.cwd()).resolve()

    for d in [curdir, *curdir.parents]:
        logger.debug(f"checking {d}")
        spread_conf = d / SPREAD_CONF_NAME
        if spread_conf.exists():
            logger.debug(f"found spread config {spread_conf}")
            backend_conf = d / name
            if not backend_conf.exists():
                raise ConfigError(
                    f"backend config file {name} not found next to {spread_conf}"
                )
            return backend_conf

    raise ConfigError(f"cannot find {SPREAD_CONF_NAME}")


def user_config_path() -> Path:
    """Returns the path to the user level configuration file."""
    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_NAME / "config.yaml"


def load_user_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    load_user_config: loads the user configuration, a missing file yields an
    empty mapping
    """
    path = path or user_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"failed to load {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} is not a mapping")
    return data


def load(path: Path, user_config: Optional[Dict[str, Any]] = None) -> BackendConfig:
    """
    load: loads the backend configuration from `path` and applies the systems
    and setup lists of the user configuration on top
    """
    logger.debug(f"loading config from {path}")
    try:
        with open(path, 'r') as f:
            conf = load_backend_config(f)
    except OSError as e:
        raise ConfigError(f"cannot open config file {path}: {e}") from e

    if user_config:
        conf = conf.with_override({
            "system": user_config.get("system"),
            "setup": user_config.get("setup"),
        })
    return conf
