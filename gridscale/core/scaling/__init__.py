"""
Scaling decision stages for GridScale.
"""

from __future__ import annotations

from .executor import ScaleExecutor
from .grow import GrowThresholds, evaluate_grow
from .metrics import aggregate_metrics
from .selector import growth_size, select_growth_nodes
from .shrink import evaluate_shrink, find_idle_nodes

__all__ = [
    "GrowThresholds",
    "ScaleExecutor",
    "aggregate_metrics",
    "evaluate_grow",
    "evaluate_shrink",
    "find_idle_nodes",
    "growth_size",
    "select_growth_nodes",
]
