"""
Grow evaluation: independent threshold checks combined with a logical OR.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from gridscale.core.entities.types import ClusterMetrics, ThresholdCheck
from gridscale.core.utils.logging import log_event

logger = logging.getLogger(__name__)

COMPONENT = "grow"


@dataclass(frozen=True)
class GrowThresholds:
    """Grow trip points; a value of 0 disables that check."""

    call_queue: int = 0
    grid_minutes: float = 0.0
    queued_jobs: int = 0

    @classmethod
    def from_config(cls, config) -> "GrowThresholds":
        return cls(
            call_queue=config.call_queue_threshold,
            grid_minutes=config.grid_minutes_threshold,
            queued_jobs=config.queued_jobs_threshold,
        )


def _check(name: str, threshold: float, observed: float) -> ThresholdCheck:
    enabled = threshold > 0
    tripped = enabled and observed >= threshold
    if not enabled:
        status = "disabled"
    else:
        status = "tripped" if tripped else "ok"
    log_event(logger, COMPONENT, f"check_{name}", status, threshold=threshold, observed=observed)
    return ThresholdCheck(name=name, threshold=threshold, observed=observed, enabled=enabled, tripped=tripped)


def evaluate_grow(
    metrics: ClusterMetrics,
    queued_jobs: int,
    thresholds: GrowThresholds,
) -> Tuple[bool, Tuple[ThresholdCheck, ...]]:
    """
    Decide whether the pool should grow this cycle.

    Returns:
        ``(grow, checks)`` where ``grow`` is true if any enabled check tripped.
    """
    checks = (
        _check("call_queue", thresholds.call_queue, metrics.outstanding_calls),
        _check("grid_minutes", thresholds.grid_minutes, metrics.grid_remaining_minutes),
        _check("queued_jobs", thresholds.queued_jobs, queued_jobs),
    )
    grow = any(check.tripped for check in checks)
    log_event(
        logger,
        COMPONENT,
        "evaluate",
        "grow" if grow else "hold",
        tripped=[check.name for check in checks if check.tripped] or "none",
    )
    return grow, checks
