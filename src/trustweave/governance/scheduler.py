"""Fixed-interval background ticks."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``fn`` every ``interval`` seconds on a daemon thread.

    The first run happens one interval after ``start``. An exception in
    ``fn`` is logged and the schedule continues.
    """

    def __init__(self, name: str, interval: float, fn: Callable[[], object]):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._fn = fn
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    def start(self) -> None:
        if self.is_alive:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Periodic task %s started (every %.1fs)", self.name, self.interval)

    def _loop(self) -> None:
        # wait() returns True once stop is requested
        while not self._stop_event.wait(self.interval):
            try:
                self._fn()
                self.runs += 1
            except Exception as e:
                logger.error("Periodic task %s failed: %s", self.name, e)
        logger.info("Periodic task %s stopped", self.name)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Periodic task %s did not stop within %ss", self.name, timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
