"""
In-memory cluster manager used for tests, demos and dry-run previews.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from gridscale.core.cluster.base import ACTIVE_JOB_STATES, ClusterManager
from gridscale.core.entities.job import Job, JobState
from gridscale.core.entities.node import Node, NodeState, node_names
from gridscale.core.errors import ClusterCommandError

logger = logging.getLogger(__name__)


class InMemoryClusterManager(ClusterManager):
    """
    Simulated cluster holding node/job snapshots.

    Lifecycle commands apply immediately: ``start_nodes`` moves NotDeployed
    nodes to Offline, ``set_node_state`` sets the requested state and
    ``stop_nodes`` returns nodes to NotDeployed.  Every call is recorded in
    :attr:`calls`; ``fail(operation, message)`` makes an operation raise.
    """

    def __init__(
        self,
        nodes: Optional[Iterable[Node]] = None,
        jobs: Optional[Iterable[Job]] = None,
        *,
        node_jobs: Optional[Dict[str, int]] = None,
        groups: Optional[Iterable[str]] = None,
    ):
        self.nodes: Dict[str, Node] = {node.name: node for node in nodes or ()}
        self.jobs: List[Job] = list(jobs or ())
        self.node_jobs: Dict[str, int] = dict(node_jobs or {})
        self.groups = set(groups or ())
        for node in self.nodes.values():
            self.groups.update(node.groups)
        self.calls: List[Tuple[str, Tuple[str, ...], Dict[str, object]]] = []
        self._failures: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Test helpers

    def fail(self, operation: str, message: str = "simulated failure") -> None:
        self._failures[operation] = message

    def recover(self, operation: Optional[str] = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    def set_jobs(self, jobs: Iterable[Job]) -> None:
        self.jobs = list(jobs)

    def assign_jobs(self, node_name: str, count: int) -> None:
        self.node_jobs[node_name] = count

    def _record(self, operation: str, names: Tuple[str, ...] = (), **extra: object) -> None:
        self.calls.append((operation, names, dict(extra)))
        message = self._failures.get(operation)
        if message is not None:
            raise ClusterCommandError(
                f"{operation} failed",
                command=operation,
                detail=message,
                context={"nodes": list(names)},
            )

    def _transition(self, nodes: Sequence[Node], state: NodeState) -> None:
        for node in nodes:
            current = self.nodes.get(node.name, node)
            self.nodes[node.name] = current.with_state(state)

    # ------------------------------------------------------------------
    # ClusterManager interface

    def query_jobs(self, templates: Sequence[str], states: Iterable[JobState] = ACTIVE_JOB_STATES) -> List[Job]:
        wanted = set(states)
        self._record("query_jobs")
        return [
            job
            for job in self.jobs
            if job.state in wanted and (not templates or job.template in templates)
        ]

    def query_nodes(
        self,
        group: str,
        templates: Sequence[str],
        states: Optional[Iterable[NodeState]] = None,
    ) -> List[Node]:
        wanted = set(states) if states is not None else None
        self._record("query_nodes", group=group)
        return [
            node
            for node in self.nodes.values()
            if (not node.groups or group in node.groups)
            and (not templates or node.template in templates)
            and (wanted is None or node.state in wanted)
        ]

    def count_active_jobs(self, node_name: str) -> int:
        self._record("count_active_jobs", (node_name,))
        return self.node_jobs.get(node_name, 0)

    def set_node_state(self, nodes: Sequence[Node], state: NodeState) -> None:
        self._record("set_node_state", node_names(nodes), state=state.value)
        self._transition(nodes, state)

    def start_nodes(self, nodes: Sequence[Node], *, wait: bool = True) -> None:
        self._record("start_nodes", node_names(nodes), wait=wait)
        self._transition(nodes, NodeState.OFFLINE)

    def stop_nodes(self, nodes: Sequence[Node], *, force: bool = False, wait: bool = True) -> None:
        self._record("stop_nodes", node_names(nodes), force=force, wait=wait)
        self._transition(nodes, NodeState.NOT_DEPLOYED)

    def node_group_exists(self, group: str) -> bool:
        return not self.groups or group in self.groups
