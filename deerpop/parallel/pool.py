"""
Bounded thread pool for (P, alpha) units of work.

Two admission policies share the same concurrency cap K:

- ``batch``: launch up to K units, then wait for all of them before
  admitting more (full barrier between batches).
- ``steady``: a counting semaphore holds one slot per running unit, so a new
  unit starts as soon as any slot frees up.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List

from deerpop.config import get_logger

logger = get_logger(__name__)

POLICIES = ("steady", "batch")


class BoundedWorkerPool:
    """Run callables on at most ``max_workers`` threads at a time."""
    
    def __init__(self, max_workers: int = 3, policy: str = "steady"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if policy not in POLICIES:
            raise ValueError(f"unknown pool policy: {policy!r}")
        
        self.max_workers = max_workers
        self.policy = policy
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="deerpop-worker"
        )
        self._slots = threading.BoundedSemaphore(max_workers)
        self._lock = threading.Lock()
        self._futures: List[Future] = []
        self.live = 0
        self.peak_live = 0
        self.completed = 0
    
    def _enter(self) -> None:
        with self._lock:
            self.live += 1
            self.peak_live = max(self.peak_live, self.live)
    
    def _exit(self) -> None:
        with self._lock:
            self.live -= 1
            self.completed += 1
    
    def _run(self, fn: Callable, args, kwargs):
        self._enter()
        try:
            return fn(*args, **kwargs)
        finally:
            self._exit()
            self._slots.release()
    
    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Queue one unit of work, blocking while K units are already admitted.

        Under the ``batch`` policy a full batch is drained before the new unit
        is accepted.
        """
        if self.policy == "batch":
            if len(self._futures) >= self.max_workers:
                self.drain()
        else:
            self._futures = [f for f in self._futures if not f.done() or f.exception() is not None]
        
        self._slots.acquire()
        try:
            future = self._executor.submit(self._run, fn, args, kwargs)
        except BaseException:
            self._slots.release()
            raise
        self._futures.append(future)
        return future
    
    def drain(self) -> None:
        """
        Wait for every submitted unit to finish.

        Re-raises the first exception raised by a unit, after all of them have
        completed; nothing is cancelled.
        """
        futures, self._futures = self._futures, []
        if not futures:
            return
        wait(futures)
        for future in futures:
            exc = future.exception()
            if exc is not None:
                raise exc
    
    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                self.drain()
            else:
                wait(self._futures)
        finally:
            self.shutdown()
