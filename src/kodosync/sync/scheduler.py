"""Bounded-concurrency scheduling for sync tasks.

This module provides:
- UploadScheduler: fixed pool of worker threads fed by a FIFO queue
- HashPool: separate bounded pool for CPU-bound fingerprinting
- SchedulerState: lifecycle of the scheduler
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kodosync.core.hashing import qetag_file

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """State of the scheduler."""

    STOPPED = auto()
    RUNNING = auto()
    STOPPING = auto()


@dataclass
class ScheduledTask:
    """A queued call and the future receiving its outcome."""

    func: Callable[..., Any]
    args: tuple[Any, ...] = ()
    future: Future[Any] = field(default_factory=Future)


class UploadScheduler:
    """Runs submitted tasks with at most max_workers in flight.

    Tasks wait in a FIFO queue and are picked up, in submission order, by a
    fixed set of worker threads as soon as one of them becomes free. A failing
    task only fails its own future.

    Usage:
        with UploadScheduler(max_workers=8) as scheduler:
            futures = [scheduler.submit(work, item) for item in items]
            scheduler.join()
    """

    def __init__(self, max_workers: int = 8, name: str = "UploadScheduler") -> None:
        """Initialize the scheduler.

        Args:
            max_workers: Maximum number of concurrently running tasks.
            name: Prefix for worker thread names.

        Raises:
            ValueError: If max_workers is less than 1.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self._max_workers = max_workers
        self._name = name
        self._scheduler_state = SchedulerState.STOPPED
        self._lock = threading.Lock()
        self._task_queue: queue.Queue[ScheduledTask | None] = queue.Queue()
        self._workers: list[threading.Thread] = []

        # Statistics
        self._active_count = 0
        self._peak_active = 0
        self._completed_count = 0
        self._error_count = 0

    @property
    def max_workers(self) -> int:
        """Concurrency limit."""
        return self._max_workers

    @property
    def state(self) -> SchedulerState:
        """Get current scheduler state."""
        return self._scheduler_state

    @property
    def active_count(self) -> int:
        """Get number of running tasks."""
        with self._lock:
            return self._active_count

    @property
    def peak_active(self) -> int:
        """Highest number of tasks that ran at the same time."""
        with self._lock:
            return self._peak_active

    @property
    def queue_size(self) -> int:
        """Get number of queued tasks."""
        return self._task_queue.qsize()

    @property
    def completed_count(self) -> int:
        """Get number of tasks that returned normally."""
        with self._lock:
            return self._completed_count

    @property
    def error_count(self) -> int:
        """Get number of tasks that raised."""
        with self._lock:
            return self._error_count

    def start(self) -> None:
        """Start the worker threads."""
        with self._lock:
            if self._scheduler_state != SchedulerState.STOPPED:
                logger.warning("Scheduler already running")
                return

            self._scheduler_state = SchedulerState.RUNNING
            for i in range(self._max_workers):
                thread = threading.Thread(
                    target=self._worker_loop,
                    name=f"{self._name}-{i}",
                    daemon=True,
                )
                thread.start()
                self._workers.append(thread)

        logger.debug(f"Scheduler started with {self._max_workers} workers")

    def submit(self, func: Callable[..., Any], *args: Any) -> Future[Any]:
        """Queue func(*args) for execution.

        Returns:
            Future resolved with the return value or the raised exception.

        Raises:
            RuntimeError: If the scheduler is not running.
        """
        if self._scheduler_state != SchedulerState.RUNNING:
            raise RuntimeError("Cannot submit task: scheduler not running")

        task = ScheduledTask(func=func, args=args)
        self._task_queue.put(task)
        return task.future

    def join(self) -> None:
        """Block until every submitted task has settled."""
        self._task_queue.join()

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the worker threads after the queued tasks finish.

        Args:
            timeout: Maximum time to wait for workers to exit.
        """
        with self._lock:
            if self._scheduler_state != SchedulerState.RUNNING:
                return
            self._scheduler_state = SchedulerState.STOPPING
            workers = list(self._workers)

        # Poison pills are queued behind pending tasks
        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.join(timeout=timeout / len(workers))

        with self._lock:
            self._scheduler_state = SchedulerState.STOPPED
            self._workers.clear()
        logger.debug("Scheduler stopped")

    def __enter__(self) -> UploadScheduler:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def _worker_loop(self) -> None:
        """Main loop for worker threads."""
        while True:
            task = self._task_queue.get()
            try:
                if task is None:
                    # Poison pill - stop worker
                    return
                self._run_task(task)
            finally:
                self._task_queue.task_done()

    def _run_task(self, task: ScheduledTask) -> None:
        """Run one task and settle its future."""
        if not task.future.set_running_or_notify_cancel():
            return

        with self._lock:
            self._active_count += 1
            self._peak_active = max(self._peak_active, self._active_count)

        try:
            result = task.func(*task.args)
        except Exception as e:
            with self._lock:
                self._error_count += 1
            task.future.set_exception(e)
        else:
            with self._lock:
                self._completed_count += 1
            task.future.set_result(result)
        finally:
            with self._lock:
                self._active_count -= 1


class HashPool:
    """Bounded thread pool reserved for content fingerprinting.

    Upload workers block on fingerprint() while the digest is computed here,
    so hashing never runs on more than max_workers threads at once.
    """

    def __init__(self, max_workers: int = 2) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="HashPool")

    @property
    def max_workers(self) -> int:
        """Hashing concurrency limit."""
        return self._max_workers

    def fingerprint(self, path: Path) -> str:
        """Compute the qetag of path on the pool and wait for it."""
        return self._executor.submit(qetag_file, path).result()

    def shutdown(self) -> None:
        """Stop the pool, waiting for running digests."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> HashPool:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()
