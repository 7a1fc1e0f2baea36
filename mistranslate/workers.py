"""Fixed-size worker pool over a shared index cursor."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Optional

POLL_SECONDS = 0.2


class WorkCursor:
    """Hands out each index in ``[start, stop)`` exactly once."""

    def __init__(self, start: int, stop: int) -> None:
        self._next = start
        self._stop = stop
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        with self._lock:
            if self._next >= self._stop:
                return None
            index = self._next
            self._next += 1
            return index


class ProgressCounter:
    """Counts finished items; only used to pace log output."""

    def __init__(self) -> None:
        self.value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self.value += 1
            return self.value


def run_with_concurrency(
    start: int,
    stop: int,
    workers: int,
    handle: Callable[[int], None],
    cancel: threading.Event,
) -> None:
    """Run ``handle`` for every index in ``[start, stop)`` on ``workers`` threads.

    Workers check ``cancel`` before claiming the next index. A Ctrl+C in the
    calling thread sets ``cancel`` and is re-raised once the pool has been told
    to stop; in-flight items finish on their own.
    """

    cursor = WorkCursor(start, stop)

    def worker() -> None:
        while not cancel.is_set():
            index = cursor.claim()
            if index is None:
                return
            handle(index)

    executor = ThreadPoolExecutor(max_workers=max(1, workers))
    futures = [executor.submit(worker) for _ in range(max(1, workers))]
    try:
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=POLL_SECONDS, return_when=FIRST_EXCEPTION)
            for future in done:
                future.result()
    except BaseException:
        cancel.set()
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
