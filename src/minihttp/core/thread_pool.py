"""
=============================================================================
FIXED-SIZE THREAD POOL
=============================================================================

A fixed set of worker threads pulling tasks from a shared queue. Each
accepted connection becomes one task.

=============================================================================
WHY A FIXED POOL?
=============================================================================

    Thread per connection, no pool:

        for conn in accept_connections():
            Thread(target=handle, args=(conn,)).start()

        A burst of 10,000 connections means 10,000 threads.

    Fixed pool:

        pool = ThreadPool(workers=64)
        pool.start()
        for conn in accept_connections():
            pool.submit(handle, args=(conn,))

        At most 64 connections are worked on at once. The rest wait in
        the queue.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   submit() ──► ┌──────────────────────────────┐                      │
    │                │ Task Queue (unbounded FIFO)  │                      │
    │                └──────────────┬───────────────┘                      │
    │                               │ get()                                │
    │            ┌──────────────────┼──────────────────┐                   │
    │            ▼                  ▼                  ▼                   │
    │       ┌─────────┐        ┌─────────┐        ┌─────────┐              │
    │       │Worker 0 │        │Worker 1 │  ...   │Worker 63│              │
    │       └─────────┘        └─────────┘        └─────────┘              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SATURATION: QUEUE, DON'T REJECT
=============================================================================

When every worker is busy, submit() still succeeds: the task waits in
an unbounded queue. Nothing is dropped and the accept loop never blocks
on submit().

The worker count is a concurrency ceiling, not admission control. A
flood of connections grows the queue without limit, and a handful of
clients that send nothing (or read nothing) can tie up every worker
while the queue behind them grows. Both are known scalability limits.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

    pool.shutdown(wait=True)
        └─ queue.join()            wait for queued + running tasks
        └─ queue.put(None) × N     one "poison pill" per worker
        └─ worker.join()           each worker exits when it gets None

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for monitoring."""
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: When the task was queued (for wait-time logging).
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. task = queue.get()          (blocks)                           │
    │   2. task is None?  → exit       (poison pill)                      │
    │   3. task.func(*args, **kwargs)                                     │
    │        └── exception? log it, count it, keep going                  │
    │   4. queue.task_done()           (always)                           │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        # daemon=True: a stuck client can't keep the process alive at exit
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE

        # Metrics
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                # queue.join() in shutdown() counts on this, poison pills included
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Run one task, containing any failure to this task.

        A connection that blows up is logged with its traceback and
        counted; the worker goes straight back to the queue.
        """
        self.state = WorkerState.BUSY
        start_time = time.monotonic()

        waited = start_time - task.submitted_at
        if waited > 1.0:
            logger.debug(f"Worker {self.worker_id} picked up task after {waited:.2f}s in queue")

        try:
            task.func(*task.args, **task.kwargs)

            elapsed = time.monotonic() - start_time
            logger.debug(f"Worker {self.worker_id} completed task in {elapsed:.3f}s")
            self.tasks_completed += 1

        except Exception as e:
            elapsed = time.monotonic() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1

        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool with an unbounded task queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   pool = ThreadPool(workers=64)                                     │
    │   pool.start()                                                      │
    │   pool.submit(process_connection, args=(conn,))                     │
    │   pool.stats          # {"workers": {...}, "tasks": {...}}          │
    │   pool.shutdown()     # drains queued work, then stops workers      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, workers: int = 64):
        """
        Args:
            workers: Number of worker threads, all started by start().
                     This is the maximum number of tasks run at once.
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        self.workers = workers

        # queue.Queue is thread-safe; maxsize=0 means unbounded
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()

        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Guards _started/_shutdown vs submit()
        self._started = False
        self._shutdown = False

    def start(self):
        """Start all worker threads. Calling it twice is a no-op."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.workers} workers")

            for worker_id in range(self.workers):
                worker = Worker(task_queue=self._task_queue, worker_id=worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> None:
        """
        Queue func(*args, **kwargs) for execution.

        Never blocks and never drops the task.

        Raises:
            RuntimeError: The pool is not started or is shutting down.
        """
        with self._lock:
            if not self._started:
                raise RuntimeError("Thread pool not started")
            if self._shutdown:
                raise RuntimeError("Thread pool is shutting down")

            self._task_queue.put(Task(func=func, args=args, kwargs=kwargs or {}))

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Wait for every queued and running task to finish first.
                  If False, tasks still in the queue are discarded; tasks
                  already running are not interrupted.
            timeout: With wait=True, give up waiting after this many
                     seconds. Workers are daemon threads, so anything
                     still running dies with the process.
        """
        with self._lock:
            if not self._started:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if wait:
            if timeout is None:
                self._task_queue.join()
            else:
                deadline = time.monotonic() + timeout
                while self._task_queue.unfinished_tasks:
                    if time.monotonic() > deadline:
                        logger.warning("Shutdown timeout, not waiting for remaining tasks")
                        break
                    time.sleep(0.05)
        else:
            self._discard_pending()

        for _ in self._workers:
            self._task_queue.put(None)

        for worker in self._workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
            self._started = False

        logger.info("Thread pool shutdown complete")

    def _discard_pending(self):
        """Drop tasks that no worker has picked up yet."""
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        """Tasks waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts for logging and health checks."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
