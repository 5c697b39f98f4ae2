from .base import AllocatorBackend, NodeDetails
from .lxd import LxdCliBackend

__all__ = ['AllocatorBackend', 'NodeDetails', 'LxdCliBackend']
