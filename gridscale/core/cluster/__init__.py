"""
Bindings to the external cluster manager.
"""

from .base import ACTIVE_JOB_STATES, ClusterManager  # noqa: F401
from .memory import InMemoryClusterManager  # noqa: F401
from .powershell import PowerShellClusterManager  # noqa: F401

__all__ = [
    "ACTIVE_JOB_STATES",
    "ClusterManager",
    "InMemoryClusterManager",
    "PowerShellClusterManager",
]
