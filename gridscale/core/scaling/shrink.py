"""
Shrink evaluation with a consecutive-idle debounce counter.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence, Tuple

from gridscale.core.entities.node import Node, NodeState, node_names
from gridscale.core.entities.types import ShrinkState
from gridscale.core.utils.logging import log_event

logger = logging.getLogger(__name__)

COMPONENT = "shrink"


def find_idle_nodes(
    nodes: Iterable[Node],
    active_jobs: Callable[[str], int],
    *,
    exclude_head_node: bool = False,
) -> Tuple[Node, ...]:
    """
    Return online nodes with zero assigned jobs.

    ``active_jobs`` is called once per online node; a node whose count cannot
    be determined (the callable raises) counts as busy.
    """
    idle = []
    for node in nodes:
        if node.state is not NodeState.ONLINE:
            continue
        if exclude_head_node and node.is_head_node:
            continue
        try:
            count = active_jobs(node.name)
        except Exception as exc:
            log_event(
                logger,
                COMPONENT,
                "count_jobs",
                "failed",
                level=logging.WARNING,
                node=node.name,
                error=str(exc) or exc.__class__.__name__,
            )
            continue
        if count == 0:
            idle.append(node)
    return tuple(idle)


def evaluate_shrink(
    idle_nodes: Sequence[Node],
    state: ShrinkState,
    debounce: int,
) -> Tuple[bool, ShrinkState]:
    """
    Advance the idle counter and decide whether to shrink.

    Any idle node extends the streak; a cycle without idle nodes resets it to 0.
    Shrink trips once the streak is strictly greater than ``debounce``.
    """
    if idle_nodes:
        new_state = state.incremented()
    else:
        new_state = ShrinkState.reset()

    shrink = new_state.idle_count > debounce
    log_event(
        logger,
        COMPONENT,
        "evaluate",
        "shrink" if shrink else "hold",
        idle_nodes=node_names(idle_nodes) or "none",
        idle_count=new_state.idle_count,
        debounce=debounce,
    )
    return shrink, new_state
