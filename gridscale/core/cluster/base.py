"""
Cluster manager interface consumed by the autoscaler.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from gridscale.core.entities.job import Job, JobState
from gridscale.core.entities.node import Node, NodeState

ACTIVE_JOB_STATES = (JobState.RUNNING, JobState.QUEUED)


class ClusterManager(ABC):
    """
    Narrow view of the external cluster manager.

    Queries return snapshots and must report zero matches as an empty list.
    Lifecycle commands raise :class:`~gridscale.core.errors.ClusterCommandError`
    on failure; the scale executor turns those into failed action results.
    """

    @abstractmethod
    def query_jobs(self, templates: Sequence[str], states: Iterable[JobState] = ACTIVE_JOB_STATES) -> List[Job]:
        """Jobs matching the optional template names and state filter."""

    @abstractmethod
    def query_nodes(
        self,
        group: str,
        templates: Sequence[str],
        states: Optional[Iterable[NodeState]] = None,
    ) -> List[Node]:
        """Nodes in ``group``, optionally filtered by template and state."""

    @abstractmethod
    def count_active_jobs(self, node_name: str) -> int:
        """Number of jobs currently assigned to ``node_name``."""

    @abstractmethod
    def set_node_state(self, nodes: Sequence[Node], state: NodeState) -> None:
        """Request an Online/Offline transition; idempotent."""

    @abstractmethod
    def start_nodes(self, nodes: Sequence[Node], *, wait: bool = True) -> None:
        """Deploy / power on ``nodes``; blocks until completion when ``wait``."""

    @abstractmethod
    def stop_nodes(self, nodes: Sequence[Node], *, force: bool = False, wait: bool = True) -> None:
        """Power off / deallocate ``nodes``; blocks until completion when ``wait``."""

    @abstractmethod
    def node_group_exists(self, group: str) -> bool:
        """Whether ``group`` names a node group known to the cluster manager."""
