import time
import uuid

from gridscale.core.actors.head import GridScaleHead
from gridscale.core.cluster import InMemoryClusterManager
from gridscale.core.entities import Job, JobState, Node, NodeState


def test_actor_reconcile_shrinks_after_debounce(ray_runtime, config_factory):
    nodes = [Node(name=f"iaas-{index}", state=NodeState.ONLINE) for index in range(3)]
    head = GridScaleHead(
        config_factory(shrink_debounce=2),
        InMemoryClusterManager(nodes),
        name=f"gridscale-it-{uuid.uuid4().hex[:8]}",
    )
    head.start(run_loop=False)
    try:
        reports = [head.reconcile() for _ in range(3)]
        assert [report["idle_count"] for report in reports] == [1, 2, 0]
        assert [action["action"] for action in reports[-1]["actions"]] == ["set_offline", "stop"]

        state = head.snapshot_state()
        assert state["cycles"] == 3
        assert state["idle_count"] == 0
    finally:
        head.stop()


def test_actor_background_loop_and_state_recovery(ray_runtime, config_factory, tmp_path):
    name = f"gridscale-it-{uuid.uuid4().hex[:8]}"
    config = config_factory(
        queued_jobs_threshold=1,
        interval_seconds=0.05,
        state_path=str(tmp_path / "state"),
    )
    cluster = InMemoryClusterManager(
        [Node(name="spare", state=NodeState.OFFLINE)],
        [Job(job_id="1", state=JobState.QUEUED)],
    )

    head = GridScaleHead(config, cluster, name=name)
    head.start()
    try:
        deadline = time.time() + 10.0
        state = head.snapshot_state()
        while state["cycles"] < 1 and time.time() < deadline:
            time.sleep(0.05)
            state = head.snapshot_state()
        assert state["running"] is True
        assert state["last_report"]["decision"]["grow"] is True
    finally:
        head.stop()

    assert (tmp_path / "state" / f"{name}-autoscaler.json").exists()
