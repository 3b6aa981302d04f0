"""
Common type definitions shared across the scaling stages and controllers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from gridscale.core.entities.node import Node, node_names


@dataclass(frozen=True)
class ClusterMetrics:
    """Workload indicators derived from the active job snapshot."""

    total_duration: float = 0.0
    total_calls: int = 0
    outstanding_calls: int = 0
    running_calls: int = 0
    allocated_cores: int = 0
    avg_seconds_per_call: float = 0.0
    grid_remaining_seconds: float = 0.0
    grid_remaining_minutes: float = 0.0
    completed_calls: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_duration": self.total_duration,
            "total_calls": self.total_calls,
            "outstanding_calls": self.outstanding_calls,
            "running_calls": self.running_calls,
            "allocated_cores": self.allocated_cores,
            "avg_seconds_per_call": self.avg_seconds_per_call,
            "grid_remaining_seconds": self.grid_remaining_seconds,
            "grid_remaining_minutes": self.grid_remaining_minutes,
            "completed_calls": self.completed_calls,
        }


@dataclass(frozen=True)
class ThresholdCheck:
    """Outcome of one grow threshold comparison."""

    name: str
    threshold: float
    observed: float
    enabled: bool
    tripped: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "threshold": self.threshold,
            "observed": self.observed,
            "enabled": self.enabled,
            "tripped": self.tripped,
        }


@dataclass(frozen=True)
class GrowthPlan:
    """Exact set of nodes to activate in a grow cycle."""

    growth_size: int = 0
    offline: Tuple[Node, ...] = ()
    undeployed: Tuple[Node, ...] = ()
    candidate_count: int = 0
    active_count: int = 0

    @property
    def selected(self) -> Tuple[Node, ...]:
        return self.offline + self.undeployed

    @property
    def is_empty(self) -> bool:
        return not self.offline and not self.undeployed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "growth_size": self.growth_size,
            "offline": list(node_names(self.offline)),
            "undeployed": list(node_names(self.undeployed)),
            "candidate_count": self.candidate_count,
            "active_count": self.active_count,
        }


@dataclass(frozen=True)
class ShrinkState:
    """Consecutive idle observations carried from one cycle to the next."""

    idle_count: int = 0

    def incremented(self) -> "ShrinkState":
        return ShrinkState(idle_count=self.idle_count + 1)

    @classmethod
    def reset(cls) -> "ShrinkState":
        return cls(idle_count=0)


@dataclass(frozen=True)
class ScalingDecision:
    """Grow/shrink verdict for one cycle; shrink is never true alongside grow."""

    grow: bool = False
    shrink: bool = False
    checks: Tuple[ThresholdCheck, ...] = ()
    plan: Optional[GrowthPlan] = None
    idle_nodes: Tuple[Node, ...] = ()

    def __post_init__(self) -> None:
        if self.grow and self.shrink:
            raise ValueError("A cycle cannot both grow and shrink")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grow": self.grow,
            "shrink": self.shrink,
            "checks": [check.to_dict() for check in self.checks],
            "plan": self.plan.to_dict() if self.plan else None,
            "idle_nodes": list(node_names(self.idle_nodes)),
        }


@dataclass(frozen=True)
class ActionResult:
    """Typed outcome of a single lifecycle call against the cluster manager."""

    action: str
    nodes: Tuple[str, ...]
    success: bool
    error: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action,
            "nodes": list(self.nodes),
            "success": self.success,
        }
        if self.error:
            data["error"] = self.error
        if self.dry_run:
            data["dry_run"] = True
        return data


@dataclass
class CycleReport:
    """Everything one control cycle observed, decided and did."""

    cycle: int
    metrics: ClusterMetrics
    decision: ScalingDecision
    shrink_state: ShrinkState
    actions: Tuple[ActionResult, ...] = ()
    degraded: bool = False
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "metrics": self.metrics.to_dict(),
            "decision": self.decision.to_dict(),
            "idle_count": self.shrink_state.idle_count,
            "actions": [result.to_dict() for result in self.actions],
            "degraded": self.degraded,
            "errors": dict(self.errors),
            "success": self.success,
        }
