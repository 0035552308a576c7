"""Bounded worker pool for concurrent stream generation."""

import asyncio
import contextvars
from typing import Any, Callable, Iterable, Optional

from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)


class WorkerPool:
    """Run blocking engine calls on threads, at most `worker_count` at once.

    The limit holds across concurrent map() calls, so one pool shared by
    several jobs never runs more than `worker_count` calls in total.

    Results come back in submission order, never completion order, so callers
    can slot them by index.
    """

    def __init__(self, worker_count: int = 2):
        """Initialize worker pool.

        Args:
            worker_count: Maximum number of concurrent calls
        """
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.worker_count = worker_count
        self._active = 0
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def map(
        self,
        fn: Callable[[Any], Any],
        items: Iterable[Any],
        stop_on_error: bool = True,
    ) -> list[Any]:
        """Apply `fn` to every item on worker threads.

        Args:
            fn: Blocking callable taking one item
            items: Work items
            stop_on_error: Don't start queued items once one has failed

        Returns:
            One entry per item, in item order: the return value, the raised
            exception, or None for items never started because of an
            earlier failure
        """
        items = list(items)
        if not items:
            return []

        loop = asyncio.get_running_loop()
        semaphore = self._slots(loop)
        failed = asyncio.Event()

        async def _run(position: int, item: Any) -> Optional[Any]:
            async with semaphore:
                if stop_on_error and failed.is_set():
                    logger.debug("Work item not started after failure", position=position)
                    return None
                self._active += 1
                try:
                    # Carry the caller's log context (job_id) onto the worker thread
                    context = contextvars.copy_context()
                    return await loop.run_in_executor(None, context.run, fn, item)
                except Exception as e:
                    failed.set()
                    return e
                finally:
                    self._active -= 1

        logger.debug("Dispatching work", items=len(items), worker_count=self.worker_count)
        return await asyncio.gather(*(_run(i, item) for i, item in enumerate(items)))

    def _slots(self, loop: asyncio.AbstractEventLoop) -> asyncio.Semaphore:
        """Semaphore shared by every map() call running on this loop."""
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.worker_count)
            self._loop = loop
        return self._semaphore

    @property
    def active_count(self) -> int:
        """Number of calls currently running."""
        return self._active
