"""
Domain entities used throughout the GridScale runtime.
"""

from .job import Job, JobState  # noqa: F401
from .node import ACTIVE_STATES, GROW_TARGET_STATES, Node, NodeState  # noqa: F401
from .types import (  # noqa: F401
    ActionResult,
    ClusterMetrics,
    CycleReport,
    GrowthPlan,
    ScalingDecision,
    ShrinkState,
    ThresholdCheck,
)

__all__ = [
    "ACTIVE_STATES",
    "GROW_TARGET_STATES",
    "ActionResult",
    "ClusterMetrics",
    "CycleReport",
    "GrowthPlan",
    "Job",
    "JobState",
    "Node",
    "NodeState",
    "ScalingDecision",
    "ShrinkState",
    "ThresholdCheck",
]
