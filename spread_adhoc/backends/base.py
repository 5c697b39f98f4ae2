from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

from ..models import NodeAllocation, NodeResources


@dataclass(frozen=True)
class NodeDetails:
    """
    Everything a backend needs to launch and provision one node.
    """
    name: str
    image: str
    resources: NodeResources = field(default_factory=NodeResources)
    secure_boot: bool = False
    provision_steps: List[str] = field(default_factory=list)


class AllocatorBackend(ABC):
    """
    Abstract interface for node allocation.
    Concrete implementations handle backend-specific details (LXD through the
    lxc command line).
    """

    @property
    @abstractmethod
    def project(self) -> str:
        """Name of the project all nodes of this backend live in."""
        pass

    @abstractmethod
    def allocate(self, node: NodeDetails) -> NodeAllocation:
        """
        Launch a node, wait for its address and run the provisioning steps.
        """
        pass

    @abstractmethod
    def deallocate_by_addr(self, addr: str) -> None:
        """Remove the running node which has the given address."""
        pass

    @abstractmethod
    def deallocate_all(self) -> None:
        """Remove all nodes."""
        pass

    @abstractmethod
    def ensure_project(self, project: str) -> None:
        """
        Create the project unless it already exists.
        Idempotent: safe to call multiple times.
        """
        pass
