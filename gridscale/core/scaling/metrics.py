"""
Workload metrics aggregation over the active job snapshot.
"""

from __future__ import annotations

import logging
from typing import Iterable

from gridscale.core.entities.job import Job
from gridscale.core.entities.types import ClusterMetrics
from gridscale.core.utils.logging import log_event
from gridscale.core.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

COMPONENT = "metrics"


def aggregate_metrics(jobs: Iterable[Job]) -> ClusterMetrics:
    """
    Reduce active jobs into the scalar indicators used by the grow checks.

    Each job's current allocation feeds both ``running_calls`` and
    ``allocated_cores``.  Grid-remaining values are 0 whenever no cores are
    allocated.
    """
    total_duration = 0.0
    total_calls = 0
    outstanding_calls = 0
    running_calls = 0
    allocated_cores = 0

    for job in jobs:
        total_duration += job.call_duration
        total_calls += job.total_calls
        outstanding_calls += job.outstanding_calls
        running_calls += job.current_allocation
        # TODO: confirm with cluster owners whether allocated cores should come from a separate field.
        allocated_cores += job.current_allocation

    avg_seconds_per_call = round_half_up(total_duration / 1000, 2)
    remaining_seconds = avg_seconds_per_call * outstanding_calls
    if allocated_cores > 0:
        grid_remaining_seconds = round_half_up(remaining_seconds / allocated_cores, 2)
    else:
        grid_remaining_seconds = 0.0
    grid_remaining_minutes = round_half_up(grid_remaining_seconds / 60, 2)

    metrics = ClusterMetrics(
        total_duration=total_duration,
        total_calls=total_calls,
        outstanding_calls=outstanding_calls,
        running_calls=running_calls,
        allocated_cores=allocated_cores,
        avg_seconds_per_call=avg_seconds_per_call,
        grid_remaining_seconds=grid_remaining_seconds,
        grid_remaining_minutes=grid_remaining_minutes,
        completed_calls=total_calls - outstanding_calls,
    )
    log_event(logger, COMPONENT, "aggregate", "ok", **metrics.to_dict())
    return metrics
