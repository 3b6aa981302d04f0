"""
Scale executor unit tests.
"""

from __future__ import annotations

from gridscale.core.entities import GrowthPlan, Node, NodeState
from gridscale.core.scaling import ScaleExecutor


def _operations(cluster):
    return [(operation, names) for operation, names, _ in cluster.calls]


def test_grow_sets_offline_nodes_online_before_deploying(cluster_factory):
    offline = (Node(name="off-1", state=NodeState.OFFLINE),)
    undeployed = (Node(name="nd-1", state=NodeState.NOT_DEPLOYED), Node(name="nd-2", state=NodeState.NOT_DEPLOYED))
    cluster = cluster_factory(offline + undeployed)

    results = ScaleExecutor(cluster).grow(GrowthPlan(growth_size=3, offline=offline, undeployed=undeployed))

    assert [(r.action, r.nodes, r.success) for r in results] == [
        ("set_online", ("off-1",), True),
        ("start", ("nd-1", "nd-2"), True),
        ("set_online", ("nd-1", "nd-2"), True),
    ]
    assert _operations(cluster) == [
        ("set_node_state", ("off-1",)),
        ("start_nodes", ("nd-1", "nd-2")),
        ("set_node_state", ("nd-1", "nd-2")),
    ]
    assert all(node.state is NodeState.ONLINE for node in cluster.nodes.values())
    assert cluster.calls[1][2] == {"wait": True}


def test_failed_start_skips_set_online(cluster_factory):
    undeployed = (Node(name="nd-1", state=NodeState.NOT_DEPLOYED),)
    cluster = cluster_factory(undeployed)
    cluster.fail("start_nodes", "quota exceeded")

    results = ScaleExecutor(cluster).grow(GrowthPlan(growth_size=1, undeployed=undeployed))

    assert len(results) == 1
    assert results[0].success is False
    assert results[0].error == "quota exceeded"
    assert _operations(cluster) == [("start_nodes", ("nd-1",))]


def test_shrink_sets_offline_then_stops(cluster_factory, node_factory):
    idle = node_factory(NodeState.ONLINE, 2)
    cluster = cluster_factory(idle)

    results = ScaleExecutor(cluster).shrink(idle)

    assert [(r.action, r.success) for r in results] == [("set_offline", True), ("stop", True)]
    assert [op for op, _ in _operations(cluster)] == ["set_node_state", "stop_nodes"]
    assert cluster.calls[0][2] == {"state": "Offline"}
    assert cluster.calls[1][2] == {"force": False, "wait": True}
    assert all(node.state is NodeState.NOT_DEPLOYED for node in cluster.nodes.values())


def test_stop_failure_is_captured_not_raised(cluster_factory, node_factory):
    idle = node_factory(NodeState.ONLINE, 1)
    cluster = cluster_factory(idle)
    cluster.fail("stop_nodes", "deallocation timed out")

    results = ScaleExecutor(cluster).shrink(idle)

    assert results[0].success is True
    assert results[1].success is False
    assert results[1].error == "deallocation timed out"
    assert results[1].to_dict()["error"] == "deallocation timed out"


def test_failed_set_offline_still_stops_nodes(cluster_factory, node_factory):
    idle = node_factory(NodeState.ONLINE, 2)
    cluster = cluster_factory(idle)
    cluster.fail("set_node_state", "node busy")

    results = ScaleExecutor(cluster).shrink(idle)

    assert [(r.action, r.success) for r in results] == [("set_offline", False), ("stop", True)]
    assert results[0].error == "node busy"
    assert [op for op, _ in _operations(cluster)] == ["set_node_state", "stop_nodes"]
    assert cluster.calls[1][1] == ("node-00", "node-01")
    assert all(node.state is NodeState.NOT_DEPLOYED for node in cluster.nodes.values())


def test_unexpected_exception_becomes_failed_result(node_factory):
    class BrokenCluster:
        def set_node_state(self, nodes, state):
            raise KeyError("boom")

        def stop_nodes(self, nodes, *, force=False, wait=True):
            pass

    results = ScaleExecutor(BrokenCluster()).shrink(node_factory(NodeState.ONLINE, 1))
    assert [r.success for r in results] == [False, True]
    assert "KeyError" in results[0].error


def test_dry_run_issues_no_calls(cluster_factory, node_factory):
    idle = node_factory(NodeState.ONLINE, 2)
    cluster = cluster_factory(idle)

    results = ScaleExecutor(cluster, dry_run=True).shrink(idle)

    assert [r.dry_run for r in results] == [True, True]
    assert all(r.success for r in results)
    assert cluster.calls == []


def test_empty_inputs_are_no_ops(cluster_factory):
    cluster = cluster_factory()
    executor = ScaleExecutor(cluster)
    assert executor.grow(GrowthPlan()) == ()
    assert executor.shrink([]) == ()
    assert cluster.calls == []
