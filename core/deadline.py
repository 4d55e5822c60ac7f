# ============================================================================
# DEADLINE
# ============================================================================
# STATUS: Core - pure helper, no I/O
# PURPOSE: One time budget shared by every I/O call of a pipeline run
# EXPORTS: Deadline, bounded_timeout
# ============================================================================

"""
Deadline.

A pipeline run creates one Deadline and asks it for a timeout before
each adapter call. The adapter gets whatever budget is left, capped by
its own configured per-call ceiling (bounded_timeout), so a slow fetch
leaves less time for the blob write and the record update that follow.

Usage:
    deadline = Deadline(120)
    store.put_object(key, data, timeout=deadline.timeout('persist'))
"""

import time
from typing import Callable, Optional


def bounded_timeout(timeout: Optional[float], ceiling: float) -> float:
    """Smaller of the caller's remaining budget and the adapter's ceiling."""
    if timeout is None:
        return ceiling
    return min(timeout, ceiling)


class Deadline:
    """Monotonic time budget. None seconds means unbounded."""

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        """Seconds left, never negative. None when unbounded."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def timeout(self, operation: str) -> Optional[float]:
        """
        Budget for the next call.

        Raises:
            TimeoutError: Nothing is left for operation
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise TimeoutError(f"deadline exceeded before {operation}")
        return remaining
