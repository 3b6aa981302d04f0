"""
Node-type policy definitions and constants.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, Tuple, TypedDict


class NodeTypePolicy(TypedDict):
    """Per node type behaviour switches."""
    node_group: str
    exclude_head_node: bool


class NodeType(str, Enum):
    """
    Kinds of worker nodes the autoscaler may grow and shrink.

    Using ``str`` as a mixin keeps the enum JSON/YAML friendly and lets the
    values match the cluster manager's built-in node group names.
    """

    COMPUTE = "ComputeNodes"
    AZURE = "AzureNodes"
    AZURE_IAAS = "AzureIaaSNodes"


# Default node group and head-node handling for each node type.  The generic
# compute group may contain the head node, which must never be shrunk.
NODE_TYPE_POLICIES: Dict[NodeType, NodeTypePolicy] = {
    NodeType.COMPUTE: {
        "node_group": "ComputeNodes",
        "exclude_head_node": True,
    },
    NodeType.AZURE: {
        "node_group": "AzureNodes",
        "exclude_head_node": False,
    },
    NodeType.AZURE_IAAS: {
        "node_group": "AzureIaaSNodes",
        "exclude_head_node": False,
    },
}


NODE_TYPE_ALIASES: Dict[str, str] = {
    "compute": NodeType.COMPUTE.value,
    "computenode": NodeType.COMPUTE.value,
    "computenodes": NodeType.COMPUTE.value,
    "on-premises": NodeType.COMPUTE.value,
    "onprem": NodeType.COMPUTE.value,
    "azure": NodeType.AZURE.value,
    "azurenode": NodeType.AZURE.value,
    "azurenodes": NodeType.AZURE.value,
    "azure-paas": NodeType.AZURE.value,
    "paas": NodeType.AZURE.value,
    "iaas": NodeType.AZURE_IAAS.value,
    "azure-iaas": NodeType.AZURE_IAAS.value,
    "azureiaas": NodeType.AZURE_IAAS.value,
    "azureiaasnode": NodeType.AZURE_IAAS.value,
    "azureiaasnodes": NodeType.AZURE_IAAS.value,
}


def resolve_node_type(
    value: str | NodeType | None,
) -> Tuple[NodeType | None, str | None]:
    """
    Resolve user input (enum, string, environment indirection) to a node type.

    Supports the following forms:
        - Enum members (:class:`NodeType`)
        - Group names, case-insensitive (``"ComputeNodes"``, ``"azurenodes"``)
        - Short aliases (``"compute"``, ``"iaas"``, etc.)
        - Environment indirection: ``"env:GRIDSCALE_NODE_TYPE"``

    Returns:
        A tuple of ``(node_type, hint)`` where ``hint`` describes the resolution source.
        If resolution fails, returns ``(None, error_hint)``.
    """
    if value is None:
        return None, None

    if isinstance(value, NodeType):
        return value, f"enum:{value.name}"

    if not isinstance(value, str):
        return None, None

    raw = value.strip()
    if not raw:
        return None, None

    # Environment indirection
    if raw.lower().startswith("env:"):
        env_key = raw[4:].strip()
        if not env_key:
            return None, "environment variable name is empty"
        env_val = os.getenv(env_key)
        if env_val is None:
            return None, f"environment variable {env_key} is not set"
        raw = env_val.strip()
        if not raw:
            return None, f"environment variable {env_key} is empty"
        hint_prefix = f'env:{env_key}="{env_val}"'
    else:
        hint_prefix = None

    lowered = raw.lower()
    canonical = NODE_TYPE_ALIASES.get(lowered)
    if canonical is None:
        canonical = next((member.value for member in NodeType if member.value.lower() == lowered), raw)
    try:
        node_type = NodeType(canonical)
    except ValueError:
        return None, hint_prefix or f'value="{raw}"'

    hint = hint_prefix or f'value="{raw}"'
    return node_type, hint


def normalize_node_type(value: str | NodeType) -> NodeType | None:
    """
    Convert user input into :class:`NodeType`.

    Returns:
        The normalised enum value, or ``None`` if the input is invalid.
    """
    node_type, _ = resolve_node_type(value)
    return node_type


def excludes_head_node(node_type: NodeType) -> bool:
    return NODE_TYPE_POLICIES[node_type]["exclude_head_node"]


def default_node_group(node_type: NodeType) -> str:
    return NODE_TYPE_POLICIES[node_type]["node_group"]
