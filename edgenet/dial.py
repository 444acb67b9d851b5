"""A blocking priority queue of dial tasks."""

from __future__ import annotations

import heapq
import itertools
import threading
from dataclasses import dataclass, field

from .common import AddrInfo, DialPriority


@dataclass(eq=False)
class DialTask:
    """A pending dial to a peer; tasks with lower priority values go first."""

    addr_info: AddrInfo
    priority: int
    _queued: bool = field(default=False, init=False, repr=False)

    @property
    def peer_id(self) -> str:
        return self.addr_info.id


class DialQueue:
    """Min-priority queue of dial tasks with blocking pop."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._heap: list[tuple[int, int, DialTask]] = []
        self._tasks: dict[str, DialTask] = {}
        self._counter = itertools.count()
        self._live = 0
        self._closed = False

    def close(self) -> None:
        """Close the queue, waking any blocked pop."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def _pop_locked(self) -> DialTask | None:
        while self._heap:
            _, _, task = heapq.heappop(self._heap)
            if task._queued:
                task._queued = False
                self._live -= 1
                return task
        return None

    def pop_task(self, timeout: float | None = None) -> DialTask | None:
        """Wait for and return the next task; None once closed or on timeout."""
        with self._cond:
            self._cond.wait_for(lambda: self._live > 0 or self._closed, timeout)
            return self._pop_locked()

    def try_pop(self) -> DialTask | None:
        """Return the next task without blocking, or None if there is none."""
        with self._cond:
            return self._pop_locked()

    def __len__(self) -> int:
        """Number of tracked tasks, including popped ones not yet deleted."""
        with self._cond:
            return len(self._tasks)

    def heap_size(self) -> int:
        """Number of tasks still waiting in the queue."""
        with self._cond:
            return self._live

    def add_task(self, addr_info: AddrInfo, priority: DialPriority | int) -> None:
        """Queue a dial to the given peer."""
        task = DialTask(addr_info, int(priority))
        task._queued = True
        with self._cond:
            self._tasks[addr_info.id] = task
            heapq.heappush(self._heap, (task.priority, next(self._counter), task))
            self._live += 1
            self._cond.notify_all()

    def delete_task(self, peer_id: str) -> None:
        """Forget the task for a peer, removing it from the queue if still there."""
        with self._cond:
            task = self._tasks.pop(peer_id, None)
            if task is not None and task._queued:
                task._queued = False
                self._live -= 1