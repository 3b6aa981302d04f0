"""
HPC Pack PowerShell binding tests with a fake process runner.
"""

from __future__ import annotations

import json
import subprocess

import pytest

from gridscale.core.cluster import PowerShellClusterManager
from gridscale.core.entities import JobState, Node, NodeState
from gridscale.core.errors import ClusterCommandError


class FakeRunner:
    """Records PowerShell invocations and replays canned outputs."""

    def __init__(self, *outputs):
        self.outputs = list(outputs)
        self.commands = []

    def __call__(self, args, **kwargs):
        self.commands.append(args[-1])
        outcome = self.outputs.pop(0) if self.outputs else ("", 0, "")
        if isinstance(outcome, Exception):
            raise outcome
        stdout, returncode, stderr = outcome
        return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


def test_query_nodes_parses_list_output():
    payload = [
        {"NetBiosName": "IAAS-01", "NodeState": "Offline", "ProcessorCores": 4, "Memory": 8192,
         "IsHeadNode": False, "Template": "Small", "Groups": "ComputeNodes,AzureIaaSNodes"},
        {"NetBiosName": "IAAS-02", "NodeState": "NotDeployed", "ProcessorCores": 8, "Memory": 16384,
         "IsHeadNode": False, "Template": "Large", "Groups": "AzureIaaSNodes"},
    ]
    runner = FakeRunner((json.dumps(payload), 0, ""))
    cluster = PowerShellClusterManager(runner=runner)

    nodes = cluster.query_nodes("AzureIaaSNodes", ["Small", "Large"])

    assert [node.name for node in nodes] == ["IAAS-01", "IAAS-02"]
    assert nodes[0].state is NodeState.OFFLINE
    assert nodes[1].state is NodeState.NOT_DEPLOYED
    assert nodes[0].groups == ("ComputeNodes", "AzureIaaSNodes")
    assert "Get-HpcNode -GroupName 'AzureIaaSNodes'" in runner.commands[0]
    assert "-TemplateName 'Small','Large'" in runner.commands[0]


def test_query_jobs_handles_single_object_and_empty_output():
    single = {"Id": 12, "State": "Queued", "CallDuration": 0, "NumberOfCalls": 30,
              "OutstandingCalls": 30, "CurrentAllocation": 0, "Template": "Soa"}
    runner = FakeRunner((json.dumps(single), 0, ""), ("", 0, ""))
    cluster = PowerShellClusterManager(runner=runner)

    jobs = cluster.query_jobs(["Soa"])
    assert len(jobs) == 1
    assert jobs[0].job_id == "12"
    assert jobs[0].state is JobState.QUEUED
    assert jobs[0].outstanding_calls == 30
    assert "-State Running,Queued" in runner.commands[0]
    assert "-TemplateName 'Soa'" in runner.commands[0]

    assert cluster.query_jobs([]) == []


def test_non_zero_exit_raises_with_stderr_detail():
    runner = FakeRunner(("", 1, "Set-HpcNodeState : node IAAS-01 not found"))
    cluster = PowerShellClusterManager(runner=runner)

    with pytest.raises(ClusterCommandError) as excinfo:
        cluster.set_node_state([Node(name="IAAS-01")], NodeState.ONLINE)
    assert "not found" in excinfo.value.detail


def test_timeout_is_reported_as_command_error():
    runner = FakeRunner(subprocess.TimeoutExpired(cmd="powershell", timeout=30))
    cluster = PowerShellClusterManager(runner=runner, timeout=30)

    with pytest.raises(ClusterCommandError, match="timed out"):
        cluster.stop_nodes([Node(name="IAAS-01")])


def test_lifecycle_command_lines():
    runner = FakeRunner()
    cluster = PowerShellClusterManager(runner=runner, scheduler="headnode")
    nodes = [Node(name="IAAS-01"), Node(name="O'Brien")]

    cluster.set_node_state(nodes, NodeState.OFFLINE)
    cluster.start_nodes(nodes)
    cluster.stop_nodes(nodes, force=True, wait=False)

    set_cmd, start_cmd, stop_cmd = runner.commands
    assert "Set-HpcNodeState -Name 'IAAS-01','O''Brien' -State offline -Scheduler 'headnode' -Force" in set_cmd
    assert "Start-HpcIaaSNode -Name 'IAAS-01','O''Brien'" in start_cmd
    assert "-Async" not in start_cmd
    assert stop_cmd.endswith("-Force -Async")


def test_empty_lifecycle_calls_do_not_spawn_processes():
    runner = FakeRunner()
    cluster = PowerShellClusterManager(runner=runner)
    cluster.set_node_state([], NodeState.ONLINE)
    cluster.start_nodes([])
    cluster.stop_nodes([])
    assert runner.commands == []


def test_count_active_jobs_and_group_lookup():
    runner = FakeRunner(("3\r\n", 0, ""), ("1\n", 0, ""), ("0\n", 0, ""), ("garbage", 0, ""))
    cluster = PowerShellClusterManager(runner=runner)

    assert cluster.count_active_jobs("IAAS-01") == 3
    assert cluster.node_group_exists("ComputeNodes") is True
    assert cluster.node_group_exists("Missing") is False
    with pytest.raises(ClusterCommandError):
        cluster.count_active_jobs("IAAS-02")
