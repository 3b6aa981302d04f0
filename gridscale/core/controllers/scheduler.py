"""
Fixed-interval scheduler that repeatedly invokes a cycle function.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class IntervalScheduler:
    """
    Run ``cycle`` then wait ``interval`` seconds, forever or until stopped.

    A cycle that raises is logged and the loop carries on with the next one.
    ``wait`` defaults to :meth:`threading.Event.wait` on the stop event so
    :meth:`stop` interrupts the sleep; tests can inject a no-op.
    """

    def __init__(
        self,
        cycle: Callable[[], Any],
        interval: float,
        *,
        wait: Optional[Callable[[float], Any]] = None,
        on_result: Optional[Callable[[Any], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.cycle = cycle
        self.interval = interval
        self._stop_event = threading.Event()
        self._wait = wait or self._stop_event.wait
        self._on_result = on_result
        self.iterations = 0
        self.failures = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        self._stop_event.set()

    def run_once(self) -> Any:
        """Execute one cycle, swallowing and logging any exception it raises."""
        self.iterations += 1
        try:
            result = self.cycle()
        except Exception:
            self.failures += 1
            logger.exception("Cycle %d failed; continuing with the next one", self.iterations)
            return None
        if self._on_result is not None:
            self._on_result(result)
        return result

    def sleep(self) -> None:
        self._wait(self.interval)

    def run(self, max_cycles: Optional[int] = None) -> int:
        """
        Loop until :meth:`stop` is called (or ``max_cycles`` cycles ran).

        A stop requested before ``run`` starts is honoured: no cycle runs.
        Create a new scheduler to run again after a stop.

        Returns:
            Number of cycles executed by this call.
        """
        executed = 0
        while not self.stopped:
            self.run_once()
            executed += 1
            if max_cycles is not None and executed >= max_cycles:
                break
            if self.stopped:
                break
            self.sleep()
        return executed
