"""
Scale executor: ordered lifecycle calls for grow and shrink decisions.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple

from gridscale.core.cluster.base import ClusterManager
from gridscale.core.entities.node import Node, NodeState, node_names
from gridscale.core.entities.types import ActionResult, GrowthPlan
from gridscale.core.errors import ClusterCommandError
from gridscale.core.utils.logging import log_event

logger = logging.getLogger(__name__)

COMPONENT = "executor"


class ScaleExecutor:
    """
    把扩缩容决策翻译为对集群管理器的有序调用。

    每个调用的结果都以 :class:`ActionResult` 返回，失败只记录日志，不在本轮重试，
    也不会向上抛出异常；下一轮会重新观察节点状态并重新决策。
    """

    def __init__(self, cluster: ClusterManager, *, dry_run: bool = False):
        self.cluster = cluster
        self.dry_run = dry_run

    def _invoke(self, action: str, nodes: Sequence[Node], call: Callable[[], None]) -> ActionResult:
        names = node_names(nodes)
        if self.dry_run:
            log_event(logger, COMPONENT, action, "dry_run", nodes=names)
            return ActionResult(action=action, nodes=names, success=True, dry_run=True)

        try:
            call()
        except ClusterCommandError as exc:
            detail = exc.detail or exc.message
            log_event(logger, COMPONENT, action, "failed", level=logging.ERROR, nodes=names, error=detail)
            return ActionResult(action=action, nodes=names, success=False, error=detail)
        except Exception as exc:
            logger.exception("Unexpected error during %s on %s", action, ",".join(names))
            detail = f"{exc.__class__.__name__}: {exc}"
            log_event(logger, COMPONENT, action, "failed", level=logging.ERROR, nodes=names, error=detail)
            return ActionResult(action=action, nodes=names, success=False, error=detail)

        log_event(logger, COMPONENT, action, "ok", nodes=names)
        return ActionResult(action=action, nodes=names, success=True)

    def grow(self, plan: GrowthPlan) -> Tuple[ActionResult, ...]:
        """
        Bring the planned nodes online.

        Offline nodes are set online first; undeployed nodes are then started
        synchronously and set online only if the start succeeded.
        """
        results: List[ActionResult] = []
        if plan.offline:
            offline = list(plan.offline)
            results.append(
                self._invoke("set_online", offline, lambda: self.cluster.set_node_state(offline, NodeState.ONLINE))
            )
        if plan.undeployed:
            undeployed = list(plan.undeployed)
            started = self._invoke("start", undeployed, lambda: self.cluster.start_nodes(undeployed, wait=True))
            results.append(started)
            if started.success:
                results.append(
                    self._invoke(
                        "set_online",
                        undeployed,
                        lambda: self.cluster.set_node_state(undeployed, NodeState.ONLINE),
                    )
                )
        return tuple(results)

    def shrink(self, nodes: Sequence[Node]) -> Tuple[ActionResult, ...]:
        """
        Take idle nodes offline, then stop/deallocate the same set synchronously.

        The stop is issued even when setting the nodes offline failed.
        """
        if not nodes:
            return ()
        idle = list(nodes)
        offline = self._invoke("set_offline", idle, lambda: self.cluster.set_node_state(idle, NodeState.OFFLINE))
        stopped = self._invoke("stop", idle, lambda: self.cluster.stop_nodes(idle, force=False, wait=True))
        return (offline, stopped)
