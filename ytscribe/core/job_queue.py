"""
Job Queue Manager and Worker.
A bounded FIFO of job ids drained by one background worker thread, so
queued jobs run strictly one at a time. Jobs that do not fit in the queue
follow the configured overflow policy; spilled and resumed runs go through
one concurrent dispatch path outside the queue.
"""

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, Future, wait
from typing import Callable, Optional

from ytscribe.core.constants import (
    ErrorCode, OverflowPolicy, DEFAULT_QUEUE_SIZE, DEFAULT_SPILL_WORKERS,
)
from ytscribe.core.error_codes import JobError
from ytscribe.core.pipeline import PipelineExecutor

logger = logging.getLogger(__name__)

_POLL_INTERVAL = 0.2


class JobQueueManager:
    """
    Serializes queued jobs through a single worker thread.

    overflow_policy decides what enqueue() does when the queue is full:
      spill:  run the job right away, concurrently, outside the queue
      reject: raise JobError(QUEUE_FULL)
      block:  wait for a free slot
    spill_workers=0 gives every spilled/resumed run its own thread;
    N > 0 caps them with a pool of N threads.
    """

    def __init__(self, executor: PipelineExecutor,
                 maxsize: int = DEFAULT_QUEUE_SIZE,
                 overflow_policy: str = OverflowPolicy.SPILL,
                 spill_workers: int = DEFAULT_SPILL_WORKERS):
        self.executor = executor
        self.overflow_policy = overflow_policy
        self._queue: queue.Queue[str] = queue.Queue(maxsize=maxsize)
        self._worker_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._current_job_id: Optional[str] = None

        self._spill_lock = threading.Lock()
        self._spilled_threads: list[threading.Thread] = []
        self._spilled_futures: list[Future] = []
        self._pool = (ThreadPoolExecutor(max_workers=spill_workers,
                                         thread_name_prefix="ytscribe-spill")
                      if spill_workers > 0 else None)

    # ── Queue management ──────────────────────────────────────────────

    def enqueue(self, job_id: str) -> bool:
        """
        Queue a job for the background worker. Returns True if queued,
        False if it spilled to a concurrent run.
        """
        if self.overflow_policy == OverflowPolicy.BLOCK:
            self._queue.put(job_id)
            logger.info("Job %s queued for background processing", job_id)
            return True

        try:
            self._queue.put_nowait(job_id)
        except queue.Full:
            if self.overflow_policy == OverflowPolicy.REJECT:
                logger.warning("Job queue full, rejecting job %s", job_id)
                raise JobError(ErrorCode.QUEUE_FULL, "Queue full")
            logger.info("Job queue full, processing job %s immediately", job_id)
            self.dispatch(self.executor.run, job_id)
            return False

        logger.info("Job %s queued for background processing", job_id)
        return True

    def resume(self, job_id: str):
        """Run the resume path concurrently, outside the queue."""
        self.dispatch(self.executor.resume, job_id)

    def dispatch(self, target: Callable[[str], object], job_id: str):
        """Run target(job_id) concurrently with the worker."""
        with self._spill_lock:
            if self._pool is not None:
                future = self._pool.submit(target, job_id)
                self._spilled_futures.append(future)
            else:
                future = None
                thread = threading.Thread(target=self._run_tracked, args=(target, job_id),
                                          name=f"ytscribe-job-{job_id[:8]}", daemon=True)
                self._spilled_threads.append(thread)
                thread.start()

        # Callbacks on an already-finished future run inline, so attach outside the lock
        if future is not None:
            future.add_done_callback(self._forget_future)

    def _run_tracked(self, target: Callable[[str], object], job_id: str):
        try:
            target(job_id)
        finally:
            with self._spill_lock:
                self._spilled_threads.remove(threading.current_thread())

    def _forget_future(self, future: Future):
        with self._spill_lock:
            if future in self._spilled_futures:
                self._spilled_futures.remove(future)

    def tracked_runs(self) -> int:
        """Number of spilled/resumed runs still in flight."""
        with self._spill_lock:
            return len(self._spilled_threads) + len(self._spilled_futures)

    def qsize(self) -> int:
        return self._queue.qsize()

    @property
    def current_job_id(self) -> Optional[str]:
        return self._current_job_id

    # ── Worker lifecycle ──────────────────────────────────────────────

    def start_processing(self):
        """Start the worker thread."""
        if self._running:
            return
        self._stop_event.clear()
        self._running = True
        self._worker_thread = threading.Thread(target=self._worker_loop,
                                               name="ytscribe-worker", daemon=True)
        self._worker_thread.start()
        logger.info("Background worker started")

    def stop_processing(self, timeout: float | None = None):
        """Stop the worker after its current job; queued ids stay queued."""
        self._stop_event.set()
        if self._worker_thread is not None:
            self._worker_thread.join(timeout)
        self._running = False
        if self._pool is not None:
            self._pool.shutdown(wait=False)

    def is_running(self) -> bool:
        return self._running

    def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Wait until the queue is drained and every spilled run finished.
        Returns False on timeout.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining():
            return None if deadline is None else max(0.0, deadline - time.monotonic())

        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                left = remaining()
                if left == 0.0:
                    return False
                self._queue.all_tasks_done.wait(left)

        with self._spill_lock:
            threads = list(self._spilled_threads)
            futures = list(self._spilled_futures)
        for thread in threads:
            thread.join(remaining())
            if thread.is_alive():
                return False
        if futures:
            _, not_done = wait(futures, timeout=remaining())
            if not_done:
                return False

        return True

    # ── Worker loop ───────────────────────────────────────────────────

    def _worker_loop(self):
        """Main worker loop: processes one job at a time."""
        try:
            while not self._stop_event.is_set():
                try:
                    job_id = self._queue.get(timeout=_POLL_INTERVAL)
                except queue.Empty:
                    continue

                self._current_job_id = job_id
                try:
                    logger.info("Processing job %s from queue", job_id)
                    self.executor.run(job_id)
                except Exception as e:
                    # run() already contains job faults; keep the worker alive
                    logger.error("Worker error on job %s: %s", job_id, e, exc_info=True)
                finally:
                    self._current_job_id = None
                    self._queue.task_done()
        finally:
            self._running = False
