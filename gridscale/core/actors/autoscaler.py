"""
Autoscaler actor.

Hosts a :class:`~gridscale.core.controllers.ControlLoop` inside a Ray actor so
the autoscaler can live on the cluster's head node next to other services.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, Optional

import ray

from gridscale.core.cluster.base import ClusterManager
from gridscale.core.config import AutoscaleConfig
from gridscale.core.controllers import ControlLoop, IntervalScheduler
from gridscale.core.entities.types import ShrinkState
from gridscale.core.errors import GridScaleError
from gridscale.core.utils import configure_runtime_logging

logger = logging.getLogger(__name__)


class AutoscalerService:
    """
    Autoscaler 的进程内实现，不依赖 Ray 装饰器，便于单元测试。

    ``reconcile`` 与后台循环共用一把锁，保证任意时刻只有一个周期在运行。
    配置了 ``state_path`` 时，连续空闲计数会在每个周期后持久化，并在重启时恢复。
    """

    def __init__(self, name: str, config: AutoscaleConfig, cluster: ClusterManager):
        configure_runtime_logging(config.log_level_value, log_file=config.log_file)
        self.name = name
        self.config = config
        self._state_path = Path(config.state_path).expanduser() if config.state_path else None
        self._lock = threading.Lock()
        self._scheduler: Optional[IntervalScheduler] = None
        self._thread: Optional[threading.Thread] = None
        self._last_report: Optional[Dict[str, Any]] = None
        self.loop = ControlLoop(config, cluster, shrink_state=self._load_state())
        logger.info("AutoscalerActor[%s] initialised (idle_count=%d)", name, self.loop.shrink_state.idle_count)

    # ------------------------------------------------------------------
    # Persistence helpers

    def _state_file(self) -> Optional[Path]:
        if self._state_path is None:
            return None
        self._state_path.mkdir(parents=True, exist_ok=True)
        return self._state_path / f"{self.name}-autoscaler.json"

    def _save_state(self) -> None:
        state_file = self._state_file()
        if state_file is None:
            return
        payload = {
            "name": self.name,
            "idle_count": self.loop.shrink_state.idle_count,
            "cycles": self.loop.cycles,
            "updated_at": time.time(),
        }
        try:
            state_file.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError:
            logger.exception("Autoscaler 状态持久化失败")

    def _load_state(self) -> ShrinkState:
        state_file = self._state_file()
        if state_file is None or not state_file.exists():
            return ShrinkState()
        try:
            data = json.loads(state_file.read_text(encoding="utf-8"))
            idle_count = int(data.get("idle_count", 0))
        except (OSError, ValueError, TypeError, AttributeError):
            logger.exception("Autoscaler 状态恢复失败，空闲计数从 0 开始")
            return ShrinkState()
        if idle_count < 0:
            return ShrinkState()
        logger.info("Autoscaler 状态从 %s 恢复: idle_count=%d", state_file, idle_count)
        return ShrinkState(idle_count=idle_count)

    # ------------------------------------------------------------------
    # Lifecycle

    def bootstrap(self) -> dict:
        """Validate configuration against the cluster before any cycle runs."""
        try:
            self.loop.validate()
        except GridScaleError as exc:
            logger.error("AutoscalerActor[%s] bootstrap failed: %s", self.name, exc)
            return {"success": False, "error": str(exc)}
        return {"success": True}

    def reconcile(self) -> dict:
        """Run a single reconciliation cycle and return its report."""
        with self._lock:
            report = self.loop.run_cycle().to_dict()
            self._last_report = report
            self._save_state()
        return report

    def start(self) -> dict:
        """Start the background interval loop (no-op when already running)."""
        if self._thread is not None and self._thread.is_alive():
            return {"success": True, "running": True}
        self._scheduler = IntervalScheduler(self.reconcile, self.config.interval_seconds)
        self._thread = threading.Thread(
            target=self._scheduler.run,
            name=f"gridscale-{self.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info("AutoscalerActor[%s] loop started (interval=%.1fs)", self.name, self.config.interval_seconds)
        return {"success": True, "running": True}

    def stop(self, timeout: Optional[float] = None) -> dict:
        """Stop the background loop after the in-flight cycle completes."""
        if self._scheduler is not None:
            self._scheduler.stop()
        if self._thread is not None:
            self._thread.join(timeout)
            running = self._thread.is_alive()
        else:
            running = False
        if not running:
            self._thread = None
            self._scheduler = None
            logger.info("AutoscalerActor[%s] loop stopped", self.name)
        return {"success": not running, "running": running}

    def snapshot_state(self) -> dict:
        """Expose current state for inspection/testing."""
        return {
            "name": self.name,
            "cycles": self.loop.cycles,
            "idle_count": self.loop.shrink_state.idle_count,
            "running": self._thread is not None and self._thread.is_alive(),
            "last_report": self._last_report,
        }


AutoscalerActor = ray.remote(AutoscalerService)
