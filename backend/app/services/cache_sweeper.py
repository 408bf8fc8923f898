"""
Background expiry sweeper for the in-memory caches.

Runs CacheService.sweep() on a fixed period in a daemon thread. This is
purely memory reclamation: cache reads check entry age themselves, so
correctness never depends on the sweeper having run.
"""

import logging
import threading
from typing import Optional

from app.services.cache_service import CacheService

# Configure logging
logger = logging.getLogger(__name__)


class CacheSweeper:
    """
    Periodic sweeper thread.

    Attributes:
        cache_service: Caches to sweep
        interval: Seconds between sweeps
        runs: Number of completed sweeps
    """

    def __init__(self, cache_service: CacheService, interval: float = 600):
        self.cache_service = cache_service
        self.interval = interval
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweeper thread; does nothing if it is already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name="cache-sweeper",
            daemon=True
        )
        self._thread.start()
        logger.info(f"Cache sweeper started (interval: {self.interval}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Cache sweeper stopped")

    def run_once(self) -> int:
        """Sweep all caches now; returns the number of entries removed."""
        removed = self.cache_service.sweep()
        self.runs += 1
        return removed

    def _run(self) -> None:
        # Event.wait returns True once stop() is called
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}", exc_info=True)
