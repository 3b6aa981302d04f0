"""
Bundled configuration defaults and node-type policy.
"""

from .policy import (  # noqa: F401
    NODE_TYPE_POLICIES,
    NodeType,
    default_node_group,
    excludes_head_node,
    normalize_node_type,
    resolve_node_type,
)

__all__ = [
    "NODE_TYPE_POLICIES",
    "NodeType",
    "default_node_group",
    "excludes_head_node",
    "normalize_node_type",
    "resolve_node_type",
]
