import pytest

from gridscale.config import NodeType, default_node_group, excludes_head_node, normalize_node_type, resolve_node_type


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ComputeNodes", NodeType.COMPUTE),
        ("computenodes", NodeType.COMPUTE),
        ("compute", NodeType.COMPUTE),
        ("AzureNodes", NodeType.AZURE),
        ("paas", NodeType.AZURE),
        ("Azure-IaaS", NodeType.AZURE_IAAS),
        (NodeType.AZURE_IAAS, NodeType.AZURE_IAAS),
    ],
)
def test_normalize_node_type(raw, expected):
    assert normalize_node_type(raw) is expected


def test_env_indirection(monkeypatch):
    monkeypatch.setenv("GRIDSCALE_NODE_TYPE", "iaas")
    node_type, hint = resolve_node_type("env:GRIDSCALE_NODE_TYPE")
    assert node_type is NodeType.AZURE_IAAS
    assert hint.startswith("env:GRIDSCALE_NODE_TYPE")


def test_env_indirection_unset(monkeypatch):
    monkeypatch.delenv("GRIDSCALE_NODE_TYPE", raising=False)
    node_type, hint = resolve_node_type("env:GRIDSCALE_NODE_TYPE")
    assert node_type is None
    assert "not set" in hint


def test_unknown_value():
    node_type, hint = resolve_node_type("gpu-farm")
    assert node_type is None
    assert hint == 'value="gpu-farm"'


def test_policy_lookup():
    assert excludes_head_node(NodeType.COMPUTE) is True
    assert excludes_head_node(NodeType.AZURE) is False
    assert default_node_group(NodeType.AZURE_IAAS) == "AzureIaaSNodes"
