"""Backend dispatcher for selecting parallel backends."""

from __future__ import annotations

from typing import Literal

from ..exceptions import ConfigurationError
from .backends.base import ParallelBackend
from .backends.serial import SerialBackend
from .backends.threaded import ThreadPoolBackend

# Available backend types
BackendType = Literal["serial", "threads"]


def get_backend(
    backend: BackendType | ParallelBackend | None = None,
    **kwargs,
) -> ParallelBackend:
    """
    Get a parallel backend instance.

    Args:
        backend: Backend specification. Can be:
            - None: A new serial backend
            - String: Create backend by name
            - ParallelBackend: Use provided instance directly
        **kwargs: Additional arguments for backend initialization.

    Returns:
        ParallelBackend instance.

    Examples:
        >>> backend = get_backend()  # serial
        >>> backend = get_backend("threads", n_workers=4)
    """
    if isinstance(backend, ParallelBackend):
        return backend

    if backend is None:
        return SerialBackend()

    return create_backend(backend, **kwargs)


def create_backend(name: BackendType, **kwargs) -> ParallelBackend:
    """
    Create a parallel backend by name.

    Args:
        name: Backend name.
        **kwargs: Backend-specific arguments.

    Returns:
        ParallelBackend instance.

    Raises:
        ConfigurationError: If backend name is unknown.
    """
    if name == "serial":
        return SerialBackend()

    elif name == "threads":
        return ThreadPoolBackend(**kwargs)

    else:
        raise ConfigurationError(f"Unknown backend: {name}. Available: serial, threads")


def backend_for_workers(n_workers: int) -> ParallelBackend:
    """Pick the serial backend for one worker and a thread pool otherwise."""
    if n_workers < 1:
        raise ConfigurationError(f"worker count must be >= 1, got {n_workers}")
    if n_workers == 1:
        return SerialBackend()
    return ThreadPoolBackend(n_workers=n_workers)
