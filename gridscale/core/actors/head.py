"""
GridScale head-node helper.
"""

from __future__ import annotations

import logging
from typing import Optional

import ray

from gridscale.core.cluster.base import ClusterManager
from gridscale.core.config import AutoscaleConfig
from gridscale.core.errors import ConfigurationError

from .autoscaler import AutoscalerActor

logger = logging.getLogger(__name__)


class GridScaleHead:
    """Convenience wrapper to start/stop the autoscaler actor on the head node."""

    def __init__(
        self,
        config: AutoscaleConfig,
        cluster: ClusterManager,
        name: str = "gridscale-autoscaler",
        *,
        detached: bool = False,
    ):
        self.name = name
        self.config = config
        self.cluster = cluster
        self.detached = detached
        self._actor: Optional[ray.actor.ActorHandle] = None

    def start(self, *, run_loop: bool = True) -> bool:
        if self._actor is None:
            options = {"name": self.name}
            if self.detached:
                options["lifetime"] = "detached"
            actor = AutoscalerActor.options(**options).remote(self.name, self.config, self.cluster)
            result = ray.get(actor.bootstrap.remote())
            if not result.get("success"):
                ray.kill(actor, no_restart=True)
                raise ConfigurationError(result.get("error") or "Autoscaler bootstrap failed")
            self._actor = actor
            if run_loop:
                ray.get(actor.start.remote())
            logger.info("GridScale autoscaler started (%s)", self.name)
        return True

    def reconcile(self) -> dict:
        if self._actor is None:
            raise RuntimeError("GridScaleHead has not been started")
        return ray.get(self._actor.reconcile.remote())

    def snapshot_state(self) -> dict:
        if self._actor is None:
            raise RuntimeError("GridScaleHead has not been started")
        return ray.get(self._actor.snapshot_state.remote())

    def stop(self) -> bool:
        if self._actor:
            try:
                ray.get(self._actor.stop.remote(self.config.interval_seconds))
            finally:
                ray.kill(self._actor, no_restart=True)
                self._actor = None
            logger.info("GridScale autoscaler stopped (%s)", self.name)
        return True
