"""
Controllers driving the autoscaling loop.
"""

from .control_loop import ControlLoop, Observation, decide  # noqa: F401
from .scheduler import IntervalScheduler  # noqa: F401

__all__ = ["ControlLoop", "IntervalScheduler", "Observation", "decide"]
