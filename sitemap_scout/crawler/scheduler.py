# sitemap_scout/crawler/scheduler.py
"""
Bounded worker pool: runs an async task over a batch of items with at most
``limit`` tasks in flight, keeping results in input order.
"""
from __future__ import annotations

import asyncio
import logging
from typing import (
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

T = TypeVar("T")

ProgressCallback = Callable[[int, int], None]


def log_progress(done: int, total: int) -> None:
    """Default progress callback."""
    pct = done * 100 // total if total else 100
    logging.getLogger("SitemapScout").info("Progress: %d/%d URLs (%d%%)", done, total, pct)


class ConcurrencyScheduler(Generic[T]):
    """
    Pull-model worker pool.

    ``min(limit, len(items))`` workers drain a shared queue of
    ``(index, item)`` pairs and write into a pre-sized result list, so the
    output order matches the input regardless of completion order.
    """

    def __init__(
        self,
        limit: int,
        *,
        progress_step: int = 10,
        on_progress: Optional[ProgressCallback] = log_progress,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self.progress_step = max(1, min(100, progress_step))
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.logger = logging.getLogger("SitemapScout")
        self.peak_active = 0
        self._active = 0
        self._done = 0
        self._next_report = 0

    async def run_all(
        self,
        items: Sequence[str],
        task: Callable[[str], Awaitable[T]],
        fallback: Callable[[str, Optional[BaseException]], T],
    ) -> List[T]:
        """
        Run *task* for every item and return the results in input order.

        An exception escaping *task* degrades that slot to
        ``fallback(item, exc)``; items never started because the cancel event
        was set get ``fallback(item, None)``.
        """
        total = len(items)
        results: List[Optional[T]] = [None] * total
        filled = [False] * total
        self.peak_active = 0
        self._active = 0
        self._done = 0
        self._next_report = self.progress_step
        if not total:
            return []

        queue: asyncio.Queue[Tuple[int, str]] = asyncio.Queue()
        for index, item in enumerate(items):
            queue.put_nowait((index, item))

        async def _worker() -> None:
            while not self._cancelled():
                try:
                    index, item = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                self._active += 1
                self.peak_active = max(self.peak_active, self._active)
                try:
                    results[index] = await task(item)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    self.logger.error("Unexpected error while processing %s: %r", item, exc)
                    results[index] = fallback(item, exc)
                finally:
                    self._active -= 1
                filled[index] = True
                self._advance(total)

        workers = [asyncio.create_task(_worker()) for _ in range(min(self.limit, total))]
        try:
            await asyncio.gather(*workers)
        finally:
            for w in workers:
                w.cancel()

        for index, item in enumerate(items):
            if not filled[index]:
                results[index] = fallback(item, None)
        return results  # type: ignore[return-value]

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _advance(self, total: int) -> None:
        self._done += 1
        if self.on_progress is None:
            return
        pct = self._done * 100 // total
        if self._done == total or pct >= self._next_report:
            self.on_progress(self._done, total)
            # next multiple of progress_step strictly above the current percentage
            self._next_report = (pct // self.progress_step + 1) * self.progress_step
