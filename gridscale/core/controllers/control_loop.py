"""
Control loop orchestrating one autoscaling cycle at a time.

A cycle is split into three stages so the decision logic can be exercised
without a live cluster:

* :meth:`ControlLoop.observe` - read-only job/node queries;
* :func:`decide` - metrics, grow evaluation, node selection or shrink
  evaluation, returning the new idle counter alongside the decision;
* :meth:`ControlLoop.act` - ordered lifecycle calls returning typed results.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from gridscale.core.cluster.base import ACTIVE_JOB_STATES, ClusterManager
from gridscale.core.config import AutoscaleConfig
from gridscale.core.entities.job import Job
from gridscale.core.entities.node import Node
from gridscale.core.entities.types import (
    ActionResult,
    ClusterMetrics,
    CycleReport,
    ScalingDecision,
    ShrinkState,
)
from gridscale.core.errors import ConfigurationError
from gridscale.core.scaling import (
    GrowThresholds,
    ScaleExecutor,
    aggregate_metrics,
    evaluate_grow,
    evaluate_shrink,
    find_idle_nodes,
    select_growth_nodes,
)
from gridscale.core.utils.logging import log_event

logger = logging.getLogger(__name__)

COMPONENT = "control_loop"


@dataclass
class Observation:
    """Snapshots gathered at the start of a cycle."""

    jobs: List[Job] = field(default_factory=list)
    nodes: List[Node] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


def decide(
    jobs: Sequence[Job],
    nodes: Sequence[Node],
    active_jobs: Callable[[str], int],
    state: ShrinkState,
    config: AutoscaleConfig,
) -> Tuple[ClusterMetrics, ScalingDecision, ShrinkState]:
    """
    Compute this cycle's scaling decision.

    Shrink is only evaluated when grow did not trip; in a grow cycle the idle
    counter is carried over unchanged.  ``active_jobs`` is only consulted on
    the shrink path.
    """
    metrics = aggregate_metrics(jobs)
    queued = sum(1 for job in jobs if job.is_queued)
    grow, checks = evaluate_grow(metrics, queued, GrowThresholds.from_config(config))

    if grow:
        plan = select_growth_nodes(
            nodes,
            config.initial_growth,
            config.incremental_growth,
            config.extra_growth_ratio,
        )
        return metrics, ScalingDecision(grow=True, checks=checks, plan=plan), state

    idle = find_idle_nodes(nodes, active_jobs, exclude_head_node=config.exclude_head_node)
    shrink, new_state = evaluate_shrink(idle, state, config.shrink_debounce)
    decision = ScalingDecision(grow=False, shrink=shrink, checks=checks, idle_nodes=idle if shrink else ())
    return metrics, decision, new_state


class ControlLoop:
    """Owns the idle counter and drives observe → decide → act for one cluster."""

    def __init__(
        self,
        config: AutoscaleConfig,
        cluster: ClusterManager,
        *,
        shrink_state: Optional[ShrinkState] = None,
    ):
        self.config = config
        self.cluster = cluster
        self.executor = ScaleExecutor(cluster, dry_run=config.dry_run)
        self.shrink_state = shrink_state or ShrinkState()
        self.cycles = 0

    def validate(self) -> None:
        """Fail fast on configuration the cluster manager cannot honour."""
        if not self.cluster.node_group_exists(self.config.node_group):
            raise ConfigurationError(
                f"Unknown node group '{self.config.node_group}'",
                context={"node_group": self.config.node_group},
            )
        log_event(
            logger,
            COMPONENT,
            "startup",
            "ok",
            node_group=self.config.node_group,
            node_type=self.config.node_type.value,
            interval=self.config.interval_seconds,
            dry_run=self.config.dry_run,
        )

    # ------------------------------------------------------------------
    # Cycle stages

    def observe(self) -> Observation:
        observation = Observation()
        try:
            observation.jobs = list(self.cluster.query_jobs(self.config.job_templates, ACTIVE_JOB_STATES))
        except Exception as exc:
            logger.exception("Job query failed; treating as no jobs this cycle")
            observation.errors["query_jobs"] = str(exc) or exc.__class__.__name__
        try:
            observation.nodes = list(self.cluster.query_nodes(self.config.node_group, self.config.node_templates))
        except Exception as exc:
            logger.exception("Node query failed; treating as no nodes this cycle")
            observation.errors["query_nodes"] = str(exc) or exc.__class__.__name__

        log_event(
            logger,
            COMPONENT,
            "observe",
            "degraded" if observation.degraded else "ok",
            jobs=len(observation.jobs),
            nodes=len(observation.nodes),
        )
        return observation

    def act(self, decision: ScalingDecision) -> Tuple[ActionResult, ...]:
        if decision.grow:
            if decision.plan is None or decision.plan.is_empty:
                log_event(logger, COMPONENT, "grow", "skipped", reason="no_candidates")
                return ()
            return self.executor.grow(decision.plan)
        if decision.shrink:
            return self.executor.shrink(decision.idle_nodes)
        return ()

    def run_cycle(self) -> CycleReport:
        """Run one complete cycle and return what happened."""
        self.cycles += 1
        observation = self.observe()
        metrics, decision, new_state = decide(
            observation.jobs,
            observation.nodes,
            self.cluster.count_active_jobs,
            self.shrink_state,
            self.config,
        )
        actions = self.act(decision)
        if decision.shrink:
            # Counter restarts after any shrink attempt, successful or not.
            new_state = ShrinkState.reset()
        self.shrink_state = new_state

        report = CycleReport(
            cycle=self.cycles,
            metrics=metrics,
            decision=decision,
            shrink_state=new_state,
            actions=actions,
            degraded=observation.degraded,
            errors=dict(observation.errors),
        )
        if decision.grow:
            outcome = "grow"
        elif decision.shrink:
            outcome = "shrink"
        else:
            outcome = "hold"
        log_event(
            logger,
            COMPONENT,
            "cycle",
            outcome,
            level=logging.INFO if report.success else logging.WARNING,
            cycle=self.cycles,
            idle_count=new_state.idle_count,
            actions=len(actions),
            failed=sum(1 for result in actions if not result.success),
            degraded=report.degraded,
        )
        return report
