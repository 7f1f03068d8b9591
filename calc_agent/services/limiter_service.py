import threading
from contextlib import contextmanager
from typing import Iterator

from calc_agent.config import DEFAULT_CONCURRENCY


class LimiterService:
    """
    Bounded admission gate for calculations running in this process.

    acquire() blocks until a slot is free, there is no wait timeout and no
    request is ever rejected.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY):
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        self.limit = limit
        self._sema = threading.BoundedSemaphore(limit)
        self._lock = threading.Lock()
        self._in_use = 0

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    def acquire(self) -> None:
        self._sema.acquire()
        with self._lock:
            self._in_use += 1

    def release(self) -> None:
        with self._lock:
            self._in_use -= 1
        self._sema.release()

    @contextmanager
    def slot(self) -> Iterator[None]:
        self.acquire()
        try:
            yield
        finally:
            self.release()
