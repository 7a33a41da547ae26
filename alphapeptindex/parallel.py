"""Partitioned thread-pool execution.

Work is split into contiguous index ranges, one task per range, run on a
``ThreadPoolExecutor``. The Numba kernels release the GIL, so partitions
score concurrently. Exceptions raised in a partition propagate to the
caller.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Tuple, TypeVar

from .config import DEFAULT_NUM_THREADS

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition_ranges(n_items: int, n_partitions: int) -> List[Tuple[int, int]]:
    """Split ``range(n_items)`` into at most ``n_partitions`` contiguous ranges.

    Examples
    --------
    >>> partition_ranges(10, 3)
    [(0, 4), (4, 7), (7, 10)]
    >>> partition_ranges(2, 4)
    [(0, 1), (1, 2)]
    """
    if n_items <= 0:
        return []
    n_partitions = max(1, min(n_partitions, n_items))
    base, extra = divmod(n_items, n_partitions)
    ranges = []
    start = 0
    for i in range(n_partitions):
        end = start + base + (1 if i < extra else 0)
        ranges.append((start, end))
        start = end
    return ranges


def run_partitioned(
    worker: Callable[[int, int], T],
    n_items: int,
    n_threads: int = DEFAULT_NUM_THREADS,
) -> Iterator[T]:
    """Run ``worker(start, end)`` over partitions, yielding results in partition order.

    Parameters
    ----------
    worker : callable
        Processes the half-open item range ``[start, end)``
    n_items : int
        Number of items to partition
    n_threads : int
        Pool size (and number of partitions)

    Yields
    ------
    result
        Return value of each partition, first partition first
    """
    ranges = partition_ranges(n_items, n_threads)
    if not ranges:
        return
    with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
        futures = [executor.submit(worker, start, end) for start, end in ranges]
        for future in futures:
            yield future.result()
