"""
Batch Fan-out

Splits a list of items into bounded batches, hands them to a worker on a
thread pool, waits for every batch to finish, and reports what happened.

A failing batch does not cancel the others. The caller receives a
BatchOutcome and decides whether a partial failure is fatal; nothing is
retried here.
"""

import logging
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive lists of at most `size` elements."""
    if size < 1:
        raise ValueError("size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


@dataclass
class BatchOutcome:
    """
    Result of a fan-out.

    Attributes:
        total_batches: Number of batches submitted
        processed: Sum of the counts returned by successful batches
        succeeded: Indexes of batches that completed
        failed: Batch index -> exception for batches that raised
    """

    total_batches: int = 0
    processed: int = 0
    succeeded: list[int] = field(default_factory=list)
    failed: dict[int, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def completely_failed(self) -> bool:
        return self.total_batches > 0 and not self.succeeded


def run_batches(
    items: Sequence[T],
    worker: Callable[[list[T]], int],
    batch_size: int,
    max_workers: int,
) -> BatchOutcome:
    """
    Run `worker` over `items` in batches of `batch_size`, concurrently.

    Returns only after every batch has completed or failed.

    Args:
        items: Work items
        worker: Processes one batch, returns how many items it handled
        batch_size: Upper bound on items per batch
        max_workers: Upper bound on batches in flight

    Returns:
        BatchOutcome describing every batch
    """
    batches = chunked(items, batch_size)
    outcome = BatchOutcome(total_batches=len(batches))
    if not batches:
        return outcome

    with ThreadPoolExecutor(max_workers=min(max_workers, len(batches))) as pool:
        futures = {pool.submit(worker, batch): index for index, batch in enumerate(batches)}
        for future in as_completed(futures):
            index = futures[future]
            try:
                outcome.processed += future.result()
            except Exception as exc:
                logger.error(f"Batch {index + 1}/{len(batches)} failed: {exc}")
                outcome.failed[index] = exc
            else:
                outcome.succeeded.append(index)

    outcome.succeeded.sort()
    return outcome
