"""
Ray actor hosting for the autoscaler.
"""

from .autoscaler import AutoscalerActor, AutoscalerService  # noqa: F401
from .head import GridScaleHead  # noqa: F401

__all__ = ["AutoscalerActor", "AutoscalerService", "GridScaleHead"]
