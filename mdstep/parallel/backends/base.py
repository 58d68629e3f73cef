"""Abstract base class for parallel backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import numpy as np
from numpy.typing import NDArray

T = TypeVar("T")


class ParallelBackend(ABC):
    """
    Abstract base class for fork-join worker backends.

    A backend scatters independent work partitions to its workers, blocks
    until every partition has finished (the join barrier) and hands the
    results back in partition order. Workers keep no state between calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return backend name."""
        ...

    @property
    @abstractmethod
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        ...

    @abstractmethod
    def map_partitions(
        self,
        func: Callable[[Any], T],
        partitions: Sequence[Any],
    ) -> list[T]:
        """
        Run func on every partition and wait for all of them.

        Args:
            func: Worker function, called once per partition.
            partitions: Work items, one per worker.

        Returns:
            Results in partition order.

        Raises:
            ThreadPoolError: If a worker fails before the join barrier.
        """
        ...

    def partition_pairs(self, n_pairs: int) -> list[slice]:
        """
        Split a pair sequence into contiguous, near-equal partitions.

        The first n_pairs % n_workers partitions get one extra pair.
        Never returns more partitions than pairs (but at least one).

        Args:
            n_pairs: Total number of pairs.

        Returns:
            List of slices covering range(n_pairs) in order.
        """
        n_parts = max(1, min(self.n_workers, n_pairs))
        pairs_per_worker = n_pairs // n_parts
        remainder = n_pairs % n_parts

        slices = []
        start = 0
        for rank in range(n_parts):
            size = pairs_per_worker + (1 if rank < remainder else 0)
            slices.append(slice(start, start + size))
            start += size
        return slices

    def reduce_sum(
        self, buffers: Sequence[NDArray[np.floating]]
    ) -> NDArray[np.floating]:
        """
        Sum private worker buffers in partition order.

        The fixed order keeps the reduction deterministic for a given
        worker count.
        """
        total = np.zeros_like(buffers[0])
        for buffer in buffers:
            total += buffer
        return total
