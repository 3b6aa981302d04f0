#!/usr/bin/env python3
"""
GridScale 扩缩容演示

展示：
1. 队列压力触发扩容（先 Offline 节点，再 NotDeployed 节点）
2. 连续空闲周期达到 debounce 后缩容
3. dry-run 模式只记录不执行
"""

import logging

from gridscale.core.cluster import InMemoryClusterManager
from gridscale.core.config import AutoscaleConfig
from gridscale.core.controllers import ControlLoop
from gridscale.core.entities import Job, JobState, Node, NodeState
from gridscale.core.utils import configure_runtime_logging


def _nodes(cluster):
    return ", ".join(f"{node.name}={node.state.value}" for node in sorted(cluster.nodes.values(), key=lambda n: n.name))


def demo_grow():
    print("\n" + "=" * 60)
    print("示例 1: 队列压力触发扩容")
    print("=" * 60)

    cluster = InMemoryClusterManager(
        [
            Node(name="cn-01", state=NodeState.NOT_DEPLOYED, cores=8, memory=16384),
            Node(name="cn-02", state=NodeState.OFFLINE, cores=4, memory=8192),
            Node(name="cn-03", state=NodeState.NOT_DEPLOYED, cores=4, memory=8192),
        ],
        [Job(job_id="1", state=JobState.RUNNING, total_calls=100, outstanding_calls=60, call_duration=5000, current_allocation=2)],
    )
    config = AutoscaleConfig(call_queue_threshold=50, initial_growth=2, incremental_growth=1)
    loop = ControlLoop(config, cluster)

    print(f"\n扩容前: {_nodes(cluster)}")
    report = loop.run_cycle()
    print(f"扩容节点: {[node.name for node in report.decision.plan.selected]}")
    print(f"扩容后: {_nodes(cluster)}")


def demo_shrink():
    print("\n" + "=" * 60)
    print("示例 2: 空闲防抖后缩容")
    print("=" * 60)

    cluster = InMemoryClusterManager([Node(name=f"cn-{i:02d}", state=NodeState.ONLINE) for i in range(1, 4)])
    config = AutoscaleConfig(call_queue_threshold=0, grid_minutes_threshold=0, queued_jobs_threshold=0, shrink_debounce=2)
    loop = ControlLoop(config, cluster)

    for _ in range(3):
        report = loop.run_cycle()
        print(f"周期 {report.cycle}: shrink={report.decision.shrink} idle_count={report.shrink_state.idle_count}")
    print(f"缩容后: {_nodes(cluster)}")


def demo_dry_run():
    print("\n" + "=" * 60)
    print("示例 3: dry-run")
    print("=" * 60)

    cluster = InMemoryClusterManager([Node(name="cn-01", state=NodeState.ONLINE)])
    config = AutoscaleConfig(call_queue_threshold=0, grid_minutes_threshold=0, queued_jobs_threshold=0, shrink_debounce=0, dry_run=True)
    report = ControlLoop(config, cluster).run_cycle()
    for action in report.actions:
        print(f"  {action.action} {list(action.nodes)} dry_run={action.dry_run}")
    print(f"节点状态未变: {_nodes(cluster)}")


if __name__ == "__main__":
    configure_runtime_logging(logging.WARNING)
    demo_grow()
    demo_shrink()
    demo_dry_run()
