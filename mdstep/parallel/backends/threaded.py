"""Thread-pool backend for shared-memory force evaluation."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from ...exceptions import ConfigurationError, NumericalInstability, ThreadPoolError
from .base import ParallelBackend

T = TypeVar("T")

logger = logging.getLogger(__name__)


class ThreadPoolBackend(ParallelBackend):
    """
    Thread-pool backend.

    Each map_partitions() call opens a ThreadPoolExecutor with a fixed
    number of workers, submits one job per partition and leaves the
    executor context only after every job has finished. No thread outlives
    the call.

    numpy releases the GIL inside its array kernels, so pair partitions
    evaluated with vectorized code overlap in practice.
    """

    def __init__(self, n_workers: int | None = None) -> None:
        """
        Initialize thread-pool backend.

        Args:
            n_workers: Number of worker threads. Defaults to CPU count.
        """
        n_workers = n_workers if n_workers is not None else os.cpu_count() or 1
        if n_workers < 1:
            raise ConfigurationError(f"worker count must be >= 1, got {n_workers}")
        self._n_workers = n_workers

    @property
    def name(self) -> str:
        """Return backend name."""
        return "threads"

    @property
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        return self._n_workers

    def map_partitions(
        self,
        func: Callable[[Any], T],
        partitions: Sequence[Any],
    ) -> list[T]:
        """
        Scatter partitions to the pool and join.

        Raises:
            NumericalInstability: Re-raised unchanged from the first worker
                (in partition order) that detected one.
            ThreadPoolError: If any other worker failed.
        """
        if len(partitions) == 0:
            return []

        with ThreadPoolExecutor(
            max_workers=self._n_workers, thread_name_prefix="mdstep-worker"
        ) as executor:
            futures = [executor.submit(func, partition) for partition in partitions]
        # Leaving the context joins every worker

        results = []
        for worker, future in enumerate(futures):
            exc = future.exception()
            if exc is None:
                results.append(future.result())
                continue
            if isinstance(exc, NumericalInstability):
                raise exc
            logger.error("worker %d failed: %r", worker, exc)
            raise ThreadPoolError(worker, repr(exc)) from exc
        return results
