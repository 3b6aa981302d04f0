"""
Shared pytest fixtures.
"""

from __future__ import annotations

import logging
from typing import Iterable

import pytest

from gridscale.core.cluster import InMemoryClusterManager
from gridscale.core.config import AutoscaleConfig
from gridscale.core.entities import Job, JobState, Node, NodeState
from gridscale.core.utils import logging as runtime_logging

logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s", force=True)
logging.getLogger("gridscale").setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def reset_runtime_logging():
    """Drop handlers installed by configure_runtime_logging so they never outlive a test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, runtime_logging._HANDLER_NAME, False) or getattr(
            handler, runtime_logging._FILE_HANDLER_NAME, False
        ):
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def ray_runtime():
    """Spin up a local Ray runtime for tests and mirror worker logs to the driver."""
    ray = pytest.importorskip("ray")
    try:
        ray.init(
            ignore_reinit_error=True,
            num_cpus=2,
            include_dashboard=False,
            logging_level=logging.INFO,
        )
    except PermissionError as exc:
        pytest.skip(f"Ray init requires system permissions not available in this environment: {exc}")
    except Exception as exc:  # pragma: no cover - defensive guard for restricted sandboxes
        if "Operation not permitted" in str(exc):
            pytest.skip(f"Ray init skipped due to restricted environment: {exc}")
        raise
    try:
        yield
    finally:
        ray.shutdown()


def make_config(**overrides) -> AutoscaleConfig:
    """AutoscaleConfig with every grow threshold disabled unless overridden."""
    values = {
        "call_queue_threshold": 0,
        "grid_minutes_threshold": 0.0,
        "queued_jobs_threshold": 0,
        "initial_growth": 3,
        "incremental_growth": 1,
        "shrink_debounce": 3,
        "interval_seconds": 0.01,
    }
    values.update(overrides)
    return AutoscaleConfig(**values)


def make_nodes(state: NodeState, count: int, *, prefix: str = "node", cores: int = 4, memory: int = 8192) -> list:
    return [Node(name=f"{prefix}-{index:02d}", state=state, cores=cores, memory=memory) for index in range(count)]


def make_job(job_id: str = "1", *, state: JobState = JobState.RUNNING, **fields) -> Job:
    return Job(job_id=job_id, state=state, **fields)


@pytest.fixture
def config_factory():
    return make_config


@pytest.fixture
def cluster_factory():
    def _factory(nodes: Iterable[Node] = (), jobs: Iterable[Job] = (), **kwargs) -> InMemoryClusterManager:
        return InMemoryClusterManager(nodes, jobs, **kwargs)

    return _factory


@pytest.fixture
def node_factory():
    return make_nodes


@pytest.fixture
def job_factory():
    return make_job
