"""
Core package bootstrap for the GridScale runtime.

Re-exports the primary classes so callers can simply do::

    from gridscale.core import ControlLoop, load_autoscale_config
"""

from __future__ import annotations

from gridscale.core.config import AutoscaleConfig, load_autoscale_config
from gridscale.core.controllers import ControlLoop, IntervalScheduler

__all__ = ["AutoscaleConfig", "ControlLoop", "IntervalScheduler", "load_autoscale_config"]
