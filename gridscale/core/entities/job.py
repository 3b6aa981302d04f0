"""
Job snapshot entity definitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping


class JobState(str, Enum):
    """Job states reported by the cluster manager that the autoscaler cares about."""

    RUNNING = "Running"
    QUEUED = "Queued"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "JobState":
        if isinstance(value, JobState):
            return value
        raw = str(value or "").strip().lower()
        for member in (cls.RUNNING, cls.QUEUED):
            if member.value.lower() == raw:
                return member
        return cls.OTHER


@dataclass(frozen=True)
class Job:
    """Immutable per-cycle view of a single job."""

    job_id: str
    state: JobState = JobState.OTHER
    call_duration: float = 0.0  # ms, average per call
    total_calls: int = 0
    outstanding_calls: int = 0
    current_allocation: int = 0
    template: str = ""

    @property
    def is_queued(self) -> bool:
        return self.state is JobState.QUEUED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.job_id,
            "state": self.state.value,
            "call_duration": self.call_duration,
            "total_calls": self.total_calls,
            "outstanding_calls": self.outstanding_calls,
            "current_allocation": self.current_allocation,
            "template": self.template,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Job":
        """
        从字典创建 Job 快照。

        同时兼容 HPC Pack ``Get-HpcJob`` 输出的字段名（``Id``、``State``、
        ``CallDuration``、``NumberOfCalls``、``OutstandingCalls``、
        ``CurrentAllocation``），缺失的数值字段按 0 处理。
        """

        def _pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in payload and payload[key] is not None:
                    return payload[key]
            return default

        return cls(
            job_id=str(_pick("id", "job_id", "Id", default="")),
            state=JobState.parse(_pick("state", "State")),
            call_duration=float(_pick("call_duration", "CallDuration", default=0) or 0),
            total_calls=int(_pick("total_calls", "NumberOfCalls", default=0) or 0),
            outstanding_calls=int(_pick("outstanding_calls", "OutstandingCalls", default=0) or 0),
            current_allocation=int(_pick("current_allocation", "CurrentAllocation", default=0) or 0),
            template=str(_pick("template", "Template", default="") or ""),
        )
