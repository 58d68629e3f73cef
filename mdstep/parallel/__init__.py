"""Fork-join worker backends for force evaluation."""

from .backends.base import ParallelBackend
from .backends.serial import SerialBackend
from .backends.threaded import ThreadPoolBackend
from .dispatcher import backend_for_workers, create_backend, get_backend

__all__ = [
    "ParallelBackend",
    "SerialBackend",
    "ThreadPoolBackend",
    "backend_for_workers",
    "create_backend",
    "get_backend",
]
