"""Outcome counters and serialized per-task progress lines."""
import sys
import threading
from typing import Optional, TextIO

from heicbatch.conversion.models import ConversionOutcome, Task
from heicbatch.tasks import AtomicCounter


class ResultCounters:
    """Succeeded/failed tallies shared by all workers."""

    def __init__(self):
        self._succeeded = AtomicCounter()
        self._failed = AtomicCounter()

    def record(self, outcome: ConversionOutcome) -> None:
        if outcome.succeeded:
            self._succeeded.fetch_add(1)
        else:
            self._failed.fetch_add(1)

    @property
    def succeeded(self) -> int:
        return self._succeeded.value

    @property
    def failed(self) -> int:
        return self._failed.value


class ProgressReporter:
    """Writes one status line per finished task. Lines from different workers never interleave."""

    def __init__(self, total: int, stream: Optional[TextIO] = None):
        self.total = total
        self._stream = stream
        self._lock = threading.Lock()

    @staticmethod
    def format_line(task: Task, total: int, outcome: ConversionOutcome) -> str:
        return (
            f"[{task.index + 1}/{total}] Converting {task.source_path.name} -> "
            f"{task.final_output_path.name} ... {outcome.label}"
        )

    def report(self, task: Task, outcome: ConversionOutcome) -> None:
        line = self.format_line(task, self.total, outcome)
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(line + "\n")
            stream.flush()

    def message(self, text: str) -> None:
        """Write a free-form line (banners, summary) under the same lock."""
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(text + "\n")
            stream.flush()
