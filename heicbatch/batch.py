"""Worker pool: a fixed set of worker loops pulling from a shared task queue until it is exhausted."""
import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional, Sequence

from heicbatch import config
from heicbatch.conversion.errors import CodecSessionError, FinalizeError, classify_failure
from heicbatch.conversion.models import ConversionOutcome, FailureKind, TargetFormat, Task, TaskStatus
from heicbatch.progress import ProgressReporter, ResultCounters
from heicbatch.tasks import AtomicCounter, TaskQueue

logger = logging.getLogger("heicbatch.batch")


class BatchState:
    """State shared by every worker of one run.

    Only the queue cursor and the counters are mutated concurrently. Each slot
    of statuses/outcomes is written solely by the worker that dequeued that index.
    """

    def __init__(self, tasks: Sequence[Task]):
        self.queue = TaskQueue(tasks)
        self.counters = ResultCounters()
        self.sessions_opened = AtomicCounter()
        self.statuses: list[TaskStatus] = [TaskStatus.PENDING] * len(self.queue)
        self.outcomes: list[Optional[ConversionOutcome]] = [None] * len(self.queue)


@dataclass
class BatchResult:
    total: int
    succeeded: int
    failed: int
    worker_count: int
    workers_started: int
    outcomes: list[Optional[ConversionOutcome]] = field(default_factory=list)
    statuses: list[TaskStatus] = field(default_factory=list)

    @property
    def unprocessed(self) -> int:
        return self.total - self.succeeded - self.failed

    def failures_by_kind(self) -> dict[FailureKind, int]:
        return dict(Counter(o.kind for o in self.outcomes if o is not None and not o.succeeded))


class WorkerPool:
    """Runs worker_count threads; each opens a codec session and drains the queue."""

    def __init__(
        self,
        tasks: Sequence[Task],
        codec,
        finalizer,
        target: TargetFormat,
        quality: Optional[float] = None,
        worker_count: Optional[int] = None,
        reporter: Optional[ProgressReporter] = None,
    ):
        if quality is not None and not 0.0 <= quality <= 1.0:
            raise ValueError(f"quality must be within [0, 1], got {quality}")
        self.tasks = tuple(tasks)
        self.target = target
        self.quality = quality
        self.worker_count = max(1, worker_count or config.MAX_WORKERS)
        self._codec = codec
        self._finalizer = finalizer
        self._reporter = reporter or ProgressReporter(len(self.tasks))

    def process_task(self, task: Task) -> ConversionOutcome:
        """Convert one task into its staging file and publish it. Never raises."""
        staging = self._finalizer.staging_path_for(task.final_output_path)
        try:
            self._codec.convert(task.source_path, staging, self.target, self.quality)
        except Exception as e:
            logger.debug("Conversion failed for %s", task.source_path, exc_info=True)
            self._finalizer.discard(staging)
            return classify_failure(e)
        try:
            self._finalizer.publish(staging, task.final_output_path)
        except FinalizeError as e:
            return classify_failure(e)
        return ConversionOutcome.success()

    def _work(self, state: BatchState) -> None:
        name = threading.current_thread().name
        try:
            with self._codec.thread_session():
                state.sessions_opened.fetch_add(1)
                while True:
                    task = state.queue.next()
                    if task is None:
                        break
                    state.statuses[task.index] = TaskStatus.IN_PROGRESS
                    outcome = self.process_task(task)
                    state.outcomes[task.index] = outcome
                    state.statuses[task.index] = outcome.status
                    state.counters.record(outcome)
                    try:
                        self._reporter.report(task, outcome)
                    except Exception as e:
                        logger.exception("Could not report progress for %s: %s", task.source_path.name, e)
        except CodecSessionError as e:
            logger.error("Worker %s could not initialize codec session: %s", name, e)

    def run(self) -> BatchResult:
        """Start all workers and block until every one has exited."""
        state = BatchState(self.tasks)
        logger.info("Starting %s workers for %s tasks", self.worker_count, len(self.tasks))
        with ThreadPoolExecutor(max_workers=self.worker_count, thread_name_prefix="heicbatch-worker") as executor:
            futures = [executor.submit(self._work, state) for _ in range(self.worker_count)]
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    logger.exception("Worker exited unexpectedly: %s", e)
        result = BatchResult(
            total=len(self.tasks),
            succeeded=state.counters.succeeded,
            failed=state.counters.failed,
            worker_count=self.worker_count,
            workers_started=state.sessions_opened.value,
            outcomes=list(state.outcomes),
            statuses=list(state.statuses),
        )
        if result.unprocessed:
            if result.workers_started == 0:
                logger.error("%s tasks were not processed: no worker could open a codec session", result.unprocessed)
            else:
                logger.error("%s tasks were not processed: workers exited early", result.unprocessed)
        return result
