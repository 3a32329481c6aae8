"""
Serialization gate: one processing cycle at a time, first come first served.

Webhook deliveries, manual triggers, the boot-time scan and debounced retries
all touch the same staging graphs. Running two cycles at once could move the
same subject twice or interleave a half-finished move with a delete, so every
cycle holds the gate for its whole duration.

A plain Lock does not guarantee wake-up order, so waiting threads take a
ticket and are admitted strictly in ticket order.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional


@dataclass
class GateStats:
    """Counters for gate usage."""
    total_cycles: int = 0
    total_wait_time: float = 0.0
    max_wait_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cycles": self.total_cycles,
            "total_wait_time": self.total_wait_time,
            "max_wait_time": self.max_wait_time,
        }


class SerializationGate:
    """
    FIFO mutual exclusion around processing cycles.

    Example:
        gate = SerializationGate()
        with gate.hold():
            process_staged_data()
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0
        self._holder: Optional[int] = None
        self._stats = GateStats()

    def acquire(self) -> int:
        """
        Block until every earlier caller has released the gate.

        Returns:
            The ticket that now holds the gate.
        """
        start = time.time()
        with self._condition:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._now_serving:
                self._condition.wait()
            self._holder = threading.get_ident()

            waited = time.time() - start
            self._stats.total_cycles += 1
            self._stats.total_wait_time += waited
            self._stats.max_wait_time = max(self._stats.max_wait_time, waited)
            return ticket

    def release(self) -> None:
        """Admit the next waiting caller."""
        with self._condition:
            if self._next_ticket == self._now_serving:
                raise RuntimeError("Gate released without being held")
            self._holder = None
            self._now_serving += 1
            self._condition.notify_all()

    @contextmanager
    def hold(self) -> Iterator[int]:
        """Hold the gate for the duration of the block."""
        ticket = self.acquire()
        try:
            yield ticket
        finally:
            self.release()

    @property
    def locked(self) -> bool:
        with self._condition:
            return self._next_ticket != self._now_serving

    @property
    def waiting(self) -> int:
        """Callers queued behind the current holder."""
        with self._condition:
            return max(0, self._next_ticket - self._now_serving - 1)

    def stats(self) -> Dict[str, Any]:
        with self._condition:
            return {
                **self._stats.to_dict(),
                "locked": self.locked,
                "waiting": self.waiting,
            }
