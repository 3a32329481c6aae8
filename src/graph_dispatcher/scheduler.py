"""
Debounced scheduling of a single delayed task.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DebouncedScheduler:
    """
    Owns at most one pending run of ``callback``.

    Every call to ``schedule`` cancels the pending run, if any, and starts a
    new delay, so a burst of schedules results in one trailing run.
    """

    def __init__(self, callback: Callable[[], object], delay_seconds: float):
        self._callback = callback
        self.delay_seconds = delay_seconds
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0

    def schedule(self) -> None:
        """(Re)start the delay before the callback runs."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(
                self.delay_seconds, self._fire, args=(self._generation,)
            )
            self._timer.daemon = True
            self._timer.start()
        logger.debug(f"Scheduled retry in {self.delay_seconds}s")

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that was cancelled just as it fired must not run.
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._callback()
