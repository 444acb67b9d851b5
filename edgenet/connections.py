"""Thread-safe bookkeeping of active and pending peer connections."""

from __future__ import annotations

import threading
from enum import IntEnum


class Direction(IntEnum):
    """Direction of a peer connection."""

    UNKNOWN = 0
    INBOUND = 1
    OUTBOUND = 2


class ConnectionInfo:
    """Counts active and pending connections per direction against fixed limits."""

    def __init__(self, max_inbound: int, max_outbound: int) -> None:
        self._lock = threading.Lock()
        self._active = {Direction.INBOUND: 0, Direction.OUTBOUND: 0}
        self._pending = {Direction.INBOUND: 0, Direction.OUTBOUND: 0}
        self._max = {Direction.INBOUND: max_inbound, Direction.OUTBOUND: max_outbound}

    @property
    def max_inbound(self) -> int:
        return self._max[Direction.INBOUND]

    @property
    def max_outbound(self) -> int:
        return self._max[Direction.OUTBOUND]

    def inbound_count(self) -> int:
        with self._lock:
            return self._active[Direction.INBOUND]

    def outbound_count(self) -> int:
        with self._lock:
            return self._active[Direction.OUTBOUND]

    def pending_inbound_count(self) -> int:
        with self._lock:
            return self._pending[Direction.INBOUND]

    def pending_outbound_count(self) -> int:
        with self._lock:
            return self._pending[Direction.OUTBOUND]

    def update_conn_count(self, delta: int, direction: Direction) -> None:
        """Adjust the active count for a direction; unknown directions are ignored."""
        with self._lock:
            if direction in self._active:
                self._active[direction] += delta

    def update_pending_conn_count(self, delta: int, direction: Direction) -> None:
        """Adjust the pending count for a direction; unknown directions are ignored."""
        with self._lock:
            if direction in self._pending:
                self._pending[direction] += delta

    def _has_free(self, direction: Direction) -> bool:
        with self._lock:
            used = self._active[direction] + self._pending[direction]
            return used < self._max[direction]

    def has_free_inbound(self) -> bool:
        return self._has_free(Direction.INBOUND)

    def has_free_outbound(self) -> bool:
        return self._has_free(Direction.OUTBOUND)

    def has_free_connection_slot(self, direction: Direction) -> bool:
        """Report whether a slot is free in the direction; False if unknown."""
        if direction not in self._max:
            return False
        return self._has_free(direction)