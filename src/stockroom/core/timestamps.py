"""
Record identifiers and calendar dates.

Allocation ids are millisecond epoch timestamps rendered as strings. Two
allocations in the same millisecond would collide, so the generator bumps
past the last value it issued: ids are strictly increasing within a
process. Across processes nothing is guaranteed (a single worker owns the
document).

Tags:
    timestamps, ids, stockroom-core, stdlib-only

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import date


def local_today() -> str:
    """Current local calendar date as ``YYYY-MM-DD``."""
    return date.today().isoformat()


class IdGenerator:
    """Strictly increasing millisecond-timestamp ids.

    Example:
        >>> gen = IdGenerator(clock=lambda: 1_700_000_000.0)
        >>> gen.next_id(), gen.next_id()
        ('1700000000000', '1700000000001')
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)


_default_generator = IdGenerator()


def generate_record_id() -> str:
    """Next id from the process-wide generator."""
    return _default_generator.next_id()
