"""
Batch Scheduler

Splits work into fixed-size batches and runs each one through an async
callable. Batches run sequentially by default; with max_concurrency > 1 they
run on a semaphore-bounded pool. Every batch is isolated: a failure or
timeout in one contributes zero and never cancels its siblings.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class BatchOutcome:
    """Result of one batch."""
    index: int
    size: int
    count: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class BatchRunResult:
    """Accumulated result across all batches."""
    outcomes: list[BatchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(o.count for o in self.outcomes)

    @property
    def batches(self) -> int:
        return len(self.outcomes)

    @property
    def failed_batches(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


def chunk(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """Split items into consecutive chunks of at most batch_size."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


async def for_each_batch(
    items: Sequence[T],
    batch_size: int,
    fn: Callable[[list[T]], Awaitable[int]],
    max_concurrency: int = 1,
    timeout: Optional[float] = None,
) -> BatchRunResult:
    """
    Run fn over fixed-size batches of items.

    Args:
        items: Work items
        batch_size: Maximum items per call to fn
        fn: Async callable returning the number of items it produced
        max_concurrency: Batches allowed in flight at once
        timeout: Per-batch timeout in seconds

    Returns:
        BatchRunResult with one outcome per batch, in batch order
    """
    batches = chunk(items, batch_size)
    if not batches:
        return BatchRunResult()

    log = logger.bind(component="batch_scheduler")
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def run_batch(index: int, batch: list[T]) -> BatchOutcome:
        async with semaphore:
            try:
                if timeout:
                    count = await asyncio.wait_for(fn(batch), timeout=timeout)
                else:
                    count = await fn(batch)
            except asyncio.TimeoutError:
                log.warning("Batch timed out", batch=index, size=len(batch), timeout=timeout)
                return BatchOutcome(index=index, size=len(batch), error="timeout")
            except Exception as e:
                log.warning("Batch failed", batch=index, size=len(batch), error=str(e))
                return BatchOutcome(index=index, size=len(batch), error=str(e))
            return BatchOutcome(index=index, size=len(batch), count=int(count or 0))

    tasks = [run_batch(i, batch) for i, batch in enumerate(batches)]
    outcomes = await asyncio.gather(*tasks)

    result = BatchRunResult(outcomes=list(outcomes))
    log.info(
        "Batches processed",
        batches=result.batches,
        failed=result.failed_batches,
        total=result.total,
    )
    return result
