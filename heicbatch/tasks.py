"""Shared work cursor and task queue handed to every worker."""
import threading
from typing import Optional, Sequence

from heicbatch.conversion.models import Task


class AtomicCounter:
    """Integer that can only be read or incremented atomically."""

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def fetch_add(self, delta: int = 1) -> int:
        """Add delta and return the value held before the increment."""
        with self._lock:
            previous = self._value
            self._value += delta
            return previous

    @property
    def value(self) -> int:
        return self._value


class TaskQueue:
    """Immutable task list with a shared cursor. Each index is handed out exactly once."""

    def __init__(self, tasks: Sequence[Task]):
        self._tasks = tuple(tasks)
        self._cursor = AtomicCounter()

    def __len__(self) -> int:
        return len(self._tasks)

    def next(self) -> Optional[Task]:
        """Return the next unclaimed task, or None once the list is exhausted. Never blocks."""
        index = self._cursor.fetch_add(1)
        if index >= len(self._tasks):
            return None
        return self._tasks[index]
