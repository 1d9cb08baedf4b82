"""
Paced Worker Pool
Fixed-width thread pool where every slot rests after each item it finishes
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, TypeVar
import logging
import time


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class PacedWorkerPool:
    """
    Bounded-concurrency runner for detail enrichment.

    One pool is built per crawl. At most ``width`` items are in flight; after
    an item completes (success or failure) its worker sleeps
    ``pacing_seconds`` before taking the next one, so pacing is per slot.
    Results come back in completion order and ``None`` results are dropped.
    """

    def __init__(self, width: int = 4, pacing_seconds: float = 0.5, sleep: Optional[Callable[[float], None]] = None):
        self.width = max(1, int(width))
        self.pacing_seconds = max(0.0, float(pacing_seconds))
        self._sleep = sleep or time.sleep
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "PacedWorkerPool":
        self._executor = ThreadPoolExecutor(max_workers=self.width, thread_name_prefix="goodvideo-detail")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _run_paced(self, func: Callable[[T], R], item: T) -> R:
        try:
            return func(item)
        finally:
            if self.pacing_seconds > 0:
                self._sleep(self.pacing_seconds)

    def map(self, func: Callable[[T], Optional[R]], items: Iterable[T]) -> List[R]:
        """Run ``func`` over ``items`` and collect the non-None results"""
        if self._executor is None:
            with self:
                return self.map(func, items)

        future_to_item = {self._executor.submit(self._run_paced, func, item): item for item in items}
        results: List[R] = []
        for future in as_completed(future_to_item):
            try:
                result = future.result()
            except Exception as e:
                LOGGER.error("Worker failed for %r: %s", future_to_item[future], e)
                continue
            if result is not None:
                results.append(result)
        return results
