"""Fixed-size concurrent batches with a pause in between."""

from __future__ import annotations

import asyncio
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .executor import Sleep

log = getLogger(__name__)


class BatchRunner:
    """Run ``worker`` over items, at most ``batch_size`` at a time.

    Items inside a batch run concurrently; a batch starts only after the
    previous one has finished and ``delay_seconds`` have passed. If a worker
    raises, its still-running siblings are cancelled, no later batch starts
    and the first exception is re-raised unwrapped.
    """

    def __init__(
        self,
        *,
        batch_size: int,
        delay_seconds: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def run[T](
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[None]],
    ) -> int:
        """Process every item and return the number of batches that were started."""

        started = 0
        for batch in batched(items, self.batch_size):
            if started and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)
            started += 1
            log.debug("Starting batch %d with %d item(s)", started, len(batch))
            try:
                async with asyncio.TaskGroup() as group:
                    for item in batch:
                        group.create_task(worker(item))
            except BaseExceptionGroup as group_error:
                first, *others = group_error.exceptions
                for other in others:
                    log.debug("Another item in batch %d also failed: %r", started, other)
                raise first from None
        return started
