from .allocator import Allocator
from .models import NodeAllocation, RemoteUserAccess

__version__ = "0.1.0"

__all__ = ['Allocator', 'NodeAllocation', 'RemoteUserAccess']
