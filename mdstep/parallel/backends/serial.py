"""Serial (single-thread) backend."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from .base import ParallelBackend

T = TypeVar("T")


class SerialBackend(ParallelBackend):
    """
    Serial backend running every partition on the calling thread.

    This is the default backend and the reference for the threaded one.
    """

    @property
    def name(self) -> str:
        """Return backend name."""
        return "serial"

    @property
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        return 1

    def map_partitions(
        self,
        func: Callable[[Any], T],
        partitions: Sequence[Any],
    ) -> list[T]:
        """Run partitions one after another; errors propagate unchanged."""
        return [func(partition) for partition in partitions]
