"""
Node selection policy for grow cycles.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from gridscale.core.entities.node import ACTIVE_STATES, GROW_TARGET_STATES, Node, NodeState, node_names
from gridscale.core.entities.types import GrowthPlan
from gridscale.core.utils.logging import log_event
from gridscale.core.utils.numbers import round_half_up

logger = logging.getLogger(__name__)

COMPONENT = "selector"


def growth_size(has_active: bool, initial: int, incremental: int, extra_ratio: int = 0) -> int:
    """
    计算本轮扩容的节点数。

    没有任何 Online/Provisioning 节点时使用 ``initial``（冷启动需要更大的一批），
    否则使用 ``incremental``。``extra_ratio`` 为百分比加成，用于弥补部分节点
    无法成功上线的情况，结果四舍五入（0.5 向上取整）。
    """
    base = incremental if has_active else initial
    if extra_ratio > 0:
        return int(round_half_up(base * (100 + extra_ratio) / 100))
    return base


def select_growth_nodes(
    nodes: Iterable[Node],
    initial: int,
    incremental: int,
    extra_ratio: int = 0,
) -> GrowthPlan:
    """Pick the offline and undeployed nodes to bring online, smallest first."""
    candidates: List[Node] = []
    active_count = 0
    for node in nodes:
        if node.state in GROW_TARGET_STATES:
            candidates.append(node)
        elif node.state in ACTIVE_STATES:
            active_count += 1

    size = growth_size(active_count > 0, initial, incremental, extra_ratio)

    if not candidates:
        log_event(logger, COMPONENT, "select", "at_capacity", growth_size=size, active=active_count)
        return GrowthPlan(growth_size=size, candidate_count=0, active_count=active_count)

    selected = sorted(candidates, key=Node.sort_key)[:size]
    offline = tuple(node for node in selected if node.state is NodeState.OFFLINE)
    undeployed = tuple(node for node in selected if node.state is NodeState.NOT_DEPLOYED)

    log_event(
        logger,
        COMPONENT,
        "select",
        "ok",
        growth_size=size,
        candidates=len(candidates),
        active=active_count,
        offline=node_names(offline) or "none",
        undeployed=node_names(undeployed) or "none",
    )
    return GrowthPlan(
        growth_size=size,
        offline=offline,
        undeployed=undeployed,
        candidate_count=len(candidates),
        active_count=active_count,
    )
