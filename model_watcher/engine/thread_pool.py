"""Thread pool shared by the per-source scan tasks."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Any, Callable


class ThreadPoolManager:
    """Own one executor sized from ``scan.max_workers`` and reuse it across runs.

    A scan reserves one worker per source, so the pool never holds fewer
    threads than the largest scan it has served.
    """

    def __init__(self, max_workers: int = 8, thread_name_prefix: str = "scan") -> None:
        self.max_workers = max_workers
        self.thread_name_prefix = thread_name_prefix
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()

    def get(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix=self.thread_name_prefix
                )
            return self._executor

    def reserve(self, workers: int) -> None:
        """Grow the pool so at least ``workers`` tasks can run at once."""

        with self._lock:
            if workers <= self.max_workers:
                return
            self.max_workers = workers
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self.get().submit(fn, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


__all__ = ["ThreadPoolManager"]
