"""
Per-Resource Locks.

Optional in-process serialization of ingest and delete for the same
resource id. Only covers one Function App instance: two instances
working on the same id still race, and the last record write wins.

Exports:
    ResourceLocks: Reference-counted lock table keyed by resource id
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class ResourceLocks:
    """
    Lock table keyed by resource id.

    Entries are created on first use and dropped when the last holder or
    waiter leaves, so the table only ever holds ids that are in flight.
    Disabled instances hand out no-op holds.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._guard = threading.Lock()
        # resource_id -> [lock, holders_and_waiters]
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, resource_id: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        with self._guard:
            entry = self._entries.setdefault(resource_id, [threading.Lock(), 0])
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[resource_id]

    def in_flight(self) -> int:
        """Number of resource ids currently held or awaited."""
        with self._guard:
            return len(self._entries)
