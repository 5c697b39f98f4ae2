"""
models.py: value objects shared by the configuration, the allocator and the
backends
"""
import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple

GIB = 1024 ** 3

DEFAULT_MEMORY = 2 * GIB
DEFAULT_CPU = 2
DEFAULT_ROOT_SIZE = 10 * GIB

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeResources:
    """
    Resources assigned to a node. Sizes are in bytes.
    """
    mem: int = DEFAULT_MEMORY
    cpu: int = DEFAULT_CPU
    size: int = DEFAULT_ROOT_SIZE   # root disk

    def __post_init__(self):
        if self.cpu < 1:
            raise ValueError("CPU count must be >= 1.")
        if self.mem <= 0 or self.size <= 0:
            raise ValueError("Memory and root disk size must be positive.")


@dataclass(frozen=True)
class SystemSpec:
    """
    Immutable declaration of a system that can be allocated, keyed by the
    spread system name.
    """
    name: str
    image: str
    setup_steps: Optional[str] = None   # name of a list under `setup`
    resources: NodeResources = field(default_factory=NodeResources)
    secure_boot: bool = False
    vm: bool = True

    def __post_init__(self):
        if not self.name or not self.image:
            raise ValueError("System name and image are required.")


@dataclass(frozen=True)
class RemoteUserAccess:
    """Account credentials set up on the node for remote access."""
    user: str
    password: str

    def setup_step(self) -> str:
        # NOTE: user and password are interpolated into a shell command as is
        return f"echo {self.user}:{self.password} | chpasswd"

    def redacted_step(self) -> str:
        return f"echo {self.user}:*** | chpasswd"


@dataclass(frozen=True)
class NetworkAddress:
    family: str
    address: str


@dataclass(frozen=True)
class NetworkState:
    addresses: Tuple[NetworkAddress, ...] = ()


@dataclass(frozen=True)
class Instance:
    """
    Instance: backend reported state of a single instance, as found in the
    output of `lxc list --format=json`
    """
    name: str
    status: str
    network: Dict[str, NetworkState] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Instance":
        """
        from_json: builds an instance from one element of the JSON listing;
        `state` and `state.network` are null for instances that are not running
        """
        state = data.get("state") or {}
        network = {}
        for ifname, ifstate in (state.get("network") or {}).items():
            network[ifname] = NetworkState(addresses=tuple(
                NetworkAddress(family=a["family"], address=a["address"])
                for a in ifstate["addresses"] or []
            ))
        return cls(name=data["name"], status=data["status"], network=network)

    def is_running(self) -> bool:
        return self.status == "Running"

    def first_ipv4(self) -> Optional[ipaddress.IPv4Address]:
        """
        first_ipv4: returns the first parseable IPv4 address reported on a
        non-loopback interface, in the order reported by the backend
        """
        for ifname, ifstate in self.network.items():
            if ifname == "lo":
                continue
            for addr in ifstate.addresses:
                if addr.family != "inet":
                    continue
                try:
                    return ipaddress.IPv4Address(addr.address)
                except ValueError:
                    logger.debug(f"cannot parse address {addr.address}")
                    continue
        return None

    def has_address(self, addr: str) -> bool:
        return any(
            a.address == addr
            for ifstate in self.network.values()
            for a in ifstate.addresses
        )


@dataclass(frozen=True)
class NodeAllocation:
    """Describes an allocated node."""
    name: str
    addr: ipaddress.IPv4Address
    ssh_port: int = 22

    def __str__(self):
        return f"{self.addr}:{self.ssh_port}"
