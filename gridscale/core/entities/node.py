"""
Node snapshot entity definitions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Tuple


class NodeState(str, Enum):
    """Lifecycle states of a cluster node."""

    OFFLINE = "Offline"
    NOT_DEPLOYED = "NotDeployed"
    PROVISIONING = "Provisioning"
    ONLINE = "Online"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "NodeState":
        if isinstance(value, NodeState):
            return value
        raw = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == raw:
                return member
        return cls.OTHER

    @property
    def rank(self) -> int:
        """Sort position: nodes closer to being ready come first."""
        return _STATE_RANK[self]


_STATE_RANK: Dict[NodeState, int] = {
    NodeState.OFFLINE: 0,
    NodeState.NOT_DEPLOYED: 1,
    NodeState.PROVISIONING: 2,
    NodeState.ONLINE: 3,
    NodeState.OTHER: 4,
}

GROW_TARGET_STATES = frozenset({NodeState.OFFLINE, NodeState.NOT_DEPLOYED})
ACTIVE_STATES = frozenset({NodeState.ONLINE, NodeState.PROVISIONING})


@dataclass(frozen=True)
class Node:
    """Immutable per-cycle view of a single node."""

    name: str
    state: NodeState = NodeState.OTHER
    cores: int = 0
    memory: int = 0  # MB
    is_head_node: bool = False
    template: str = ""
    groups: Tuple[str, ...] = field(default_factory=tuple)

    def sort_key(self) -> Tuple[int, int, int]:
        return (self.state.rank, self.cores, self.memory)

    def with_state(self, state: NodeState) -> "Node":
        return Node(
            name=self.name,
            state=state,
            cores=self.cores,
            memory=self.memory,
            is_head_node=self.is_head_node,
            template=self.template,
            groups=self.groups,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "cores": self.cores,
            "memory": self.memory,
            "is_head_node": self.is_head_node,
            "template": self.template,
            "groups": list(self.groups),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Node":
        """Build a snapshot from either snake_case keys or ``Get-HpcNode`` output."""

        def _pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in payload and payload[key] is not None:
                    return payload[key]
            return default

        raw_groups = _pick("groups", "Groups", default=())
        if isinstance(raw_groups, str):
            groups = tuple(part.strip() for part in raw_groups.split(",") if part.strip())
        else:
            groups = tuple(str(item) for item in raw_groups or ())

        return cls(
            name=str(_pick("name", "NetBiosName", "Name", default="")),
            state=NodeState.parse(_pick("state", "NodeState")),
            cores=int(_pick("cores", "ProcessorCores", default=0) or 0),
            memory=int(_pick("memory", "Memory", default=0) or 0),
            is_head_node=_as_bool(_pick("is_head_node", "IsHeadNode", default=False)),
            template=str(_pick("template", "Template", default="") or ""),
            groups=groups,
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def node_names(nodes) -> Tuple[str, ...]:
    return tuple(node.name for node in nodes)
