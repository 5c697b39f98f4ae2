"""
allocator.py: spread node allocator, maps spread system names to backend
allocations
"""
import logging
import random
from typing import Optional

from .app_config import AllocatorSettings
from .backends import AllocatorBackend, LxdCliBackend, NodeDetails
from .config import BackendConfig
from .errors import NotFoundError
from .models import NodeAllocation, RemoteUserAccess

logger = logging.getLogger(__name__)


def node_name(sysname: str, suffix: Optional[int] = None) -> str:
    """
    node_name: unique name for a new node of a given system, so that the
    same system can be allocated more than once at a time
    """
    if suffix is None:
        suffix = random.getrandbits(32)
    return f"{sysname}-{suffix}"


class Allocator:
    """
    Allocator: allocates and discards nodes for spread systems using a backend
    """

    def __init__(self, conf: Optional[BackendConfig] = None,
                 backend: Optional[AllocatorBackend] = None,
                 settings: Optional[AllocatorSettings] = None):
        self.conf = conf or BackendConfig()
        self.settings = settings or AllocatorSettings()
        self.backend = backend or LxdCliBackend(settings=self.settings)

    def allocate(self, sysname: str, user_config: RemoteUserAccess) -> NodeAllocation:
        """
        allocate: allocates a node for a spread system and sets up remote
        access for the user
        """
        sysconf = self.conf.get_system(sysname)
        if sysconf is None:
            raise NotFoundError(f"system \"{sysname}\" not found in configuration")

        if sysconf.setup_steps is not None:
            steps = self.conf.get_setup(sysconf.setup_steps)
            if steps is None:
                raise NotFoundError(
                    f"setup steps \"{sysconf.setup_steps}\" not found in configuration"
                )
        else:
            logger.warning("no setup steps declared for this system")
            steps = []

        # TODO: validate user and password before they end up in a shell command
        steps = list(steps)
        steps.append(user_config.setup_step())
        logger.debug(f"setup steps: {len(steps) - 1} + {user_config.redacted_step()}")

        name = node_name(sysname)

        if not sysconf.vm:
            logger.warning(f"system \"{sysname}\" sets vm: false, launching a VM anyway")

        self.backend.ensure_project(self.backend.project)

        return self.backend.allocate(NodeDetails(
            name=name,
            image=sysconf.image,
            resources=sysconf.resources,
            secure_boot=sysconf.secure_boot,
            provision_steps=steps,
        ))

    def deallocate_by_addr(self, addr: str) -> None:
        """Deallocate a node associated with a given address."""
        self.backend.deallocate_by_addr(addr)

    def deallocate_all(self) -> None:
        """Deallocate all nodes."""
        self.backend.deallocate_all()
