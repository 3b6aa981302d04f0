"""
HPC Pack binding that drives the cluster through PowerShell cmdlets.

Every call spawns one ``powershell`` process, loads the HPC snap-in and pipes
query results through ``ConvertTo-Json`` so they can be parsed here.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Callable, Iterable, List, Optional, Sequence

from gridscale.core.cluster.base import ACTIVE_JOB_STATES, ClusterManager
from gridscale.core.entities.job import Job, JobState
from gridscale.core.entities.node import Node, NodeState
from gridscale.core.errors import ClusterCommandError

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

_SNAPIN = "Add-PSSnapin Microsoft.HPC -ErrorAction SilentlyContinue"

_JOB_FIELDS = (
    "Id,"
    "@{n='State';e={$_.State.ToString()}},"
    "CallDuration,NumberOfCalls,OutstandingCalls,CurrentAllocation,"
    "@{n='Template';e={$_.Template.ToString()}}"
)
_NODE_FIELDS = (
    "NetBiosName,"
    "@{n='NodeState';e={$_.NodeState.ToString()}},"
    "ProcessorCores,Memory,IsHeadNode,"
    "@{n='Template';e={$_.Template.ToString()}},"
    "@{n='Groups';e={$_.Groups.ToString()}}"
)


def ps_quote(value: str) -> str:
    """Quote ``value`` as a single-quoted PowerShell literal."""
    return "'" + str(value).replace("'", "''") + "'"


def ps_list(values: Iterable[str]) -> str:
    return ",".join(ps_quote(value) for value in values)


def _parse_json_records(stdout: str) -> List[dict]:
    text = (stdout or "").strip()
    if not text:
        return []
    data = json.loads(text)
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    return []


class PowerShellClusterManager(ClusterManager):
    """Cluster manager backed by HPC Pack PowerShell cmdlets."""

    def __init__(
        self,
        *,
        scheduler: Optional[str] = None,
        executable: str = "powershell",
        timeout: Optional[float] = None,
        start_cmdlet: str = "Start-HpcIaaSNode",
        stop_cmdlet: str = "Stop-HpcIaaSNode",
        runner: Optional[Runner] = None,
    ):
        self.scheduler = scheduler
        self.executable = executable
        self.timeout = timeout
        self.start_cmdlet = start_cmdlet
        self.stop_cmdlet = stop_cmdlet
        self._runner: Runner = runner or subprocess.run

    # ------------------------------------------------------------------
    # Process helpers

    def _scheduler_arg(self) -> str:
        return f" -Scheduler {ps_quote(self.scheduler)}" if self.scheduler else ""

    def _run(self, command: str) -> str:
        script = f"{_SNAPIN}; $ErrorActionPreference = 'Stop'; {command}"
        logger.debug("PowerShell 执行: %s", command)
        try:
            completed = self._runner(
                [self.executable, "-NoProfile", "-NonInteractive", "-Command", script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ClusterCommandError(
                "PowerShell command timed out",
                command=command,
                detail=f"timeout after {exc.timeout}s",
            ) from exc
        except OSError as exc:
            raise ClusterCommandError(
                "Unable to launch PowerShell",
                command=command,
                detail=str(exc),
            ) from exc

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise ClusterCommandError(
                f"PowerShell command exited with status {completed.returncode}",
                command=command,
                detail=detail,
            )
        return completed.stdout or ""

    def _query(self, command: str) -> List[dict]:
        stdout = self._run(command)
        try:
            return _parse_json_records(stdout)
        except json.JSONDecodeError as exc:
            raise ClusterCommandError(
                "Unparseable PowerShell output",
                command=command,
                detail=str(exc),
            ) from exc

    # ------------------------------------------------------------------
    # ClusterManager interface

    def query_jobs(self, templates: Sequence[str], states: Iterable[JobState] = ACTIVE_JOB_STATES) -> List[Job]:
        state_arg = ",".join(state.value for state in states)
        base = f"Get-HpcJob -State {state_arg}{self._scheduler_arg()} -ErrorAction SilentlyContinue"
        if templates:
            # Get-HpcJob accepts a single template per call.
            source = "; ".join(f"{base} -TemplateName {ps_quote(name)}" for name in templates)
            source = f"@({source})"
        else:
            source = f"@({base})"
        records = self._query(f"{source} | Select-Object {_JOB_FIELDS} | ConvertTo-Json -Compress")
        return [Job.from_dict(record) for record in records]

    def query_nodes(
        self,
        group: str,
        templates: Sequence[str],
        states: Optional[Iterable[NodeState]] = None,
    ) -> List[Node]:
        command = f"Get-HpcNode -GroupName {ps_quote(group)}{self._scheduler_arg()}"
        if templates:
            command += f" -TemplateName {ps_list(templates)}"
        if states is not None:
            command += " -State " + ",".join(state.value for state in states)
        command += " -ErrorAction SilentlyContinue"
        records = self._query(f"@({command}) | Select-Object {_NODE_FIELDS} | ConvertTo-Json -Compress")
        return [Node.from_dict(record) for record in records]

    def count_active_jobs(self, node_name: str) -> int:
        stdout = self._run(
            f"@(Get-HpcJob -NodeName {ps_quote(node_name)} -State Running{self._scheduler_arg()} "
            "-ErrorAction SilentlyContinue).Count"
        )
        try:
            return int(stdout.strip() or 0)
        except ValueError as exc:
            raise ClusterCommandError(
                "Unparseable job count",
                command="count_active_jobs",
                detail=stdout.strip(),
            ) from exc

    def set_node_state(self, nodes: Sequence[Node], state: NodeState) -> None:
        if not nodes:
            return
        command = (
            f"Set-HpcNodeState -Name {ps_list(node.name for node in nodes)} "
            f"-State {state.value.lower()}{self._scheduler_arg()}"
        )
        if state is NodeState.OFFLINE:
            command += " -Force"
        self._run(command)

    def start_nodes(self, nodes: Sequence[Node], *, wait: bool = True) -> None:
        if not nodes:
            return
        command = f"{self.start_cmdlet} -Name {ps_list(node.name for node in nodes)}{self._scheduler_arg()}"
        if not wait:
            command += " -Async"
        self._run(command)

    def stop_nodes(self, nodes: Sequence[Node], *, force: bool = False, wait: bool = True) -> None:
        if not nodes:
            return
        command = f"{self.stop_cmdlet} -Name {ps_list(node.name for node in nodes)}{self._scheduler_arg()}"
        if force:
            command += " -Force"
        if not wait:
            command += " -Async"
        self._run(command)

    def node_group_exists(self, group: str) -> bool:
        stdout = self._run(
            f"@(Get-HpcGroup{self._scheduler_arg()} | Where-Object {{ $_.Name -eq {ps_quote(group)} }}).Count"
        )
        return stdout.strip() not in ("", "0")
