"""
Fresh variable names for generated queries.
"""

from __future__ import annotations

import threading

DEFAULT_PREFIX = "G_"
MAX_COUNTER = 100000


class SymbolGenerator:
    """
    Counter-based symbol source.

    All prefixes share one counter, so ``next("?v")`` after ``next()`` never
    reuses a number. The counter wraps to zero after ``MAX_COUNTER``.

    Example:
        symbols = SymbolGenerator()
        symbols.next()      # 'G_1'
        symbols.next("?v")  # '?v2'
    """

    def __init__(self):
        self._counter = 0
        self._lock = threading.Lock()

    def next(self, prefix: str = DEFAULT_PREFIX) -> str:
        with self._lock:
            self._counter += 1
            if self._counter > MAX_COUNTER:
                self._counter = 0
            return f"{prefix}{self._counter}"

    def reset(self) -> None:
        """Start counting from the beginning again."""
        with self._lock:
            self._counter = 0
