"""Exception hierarchy for the simulation core."""

from __future__ import annotations


class MDStepError(Exception):
    """Base class for all errors raised by mdstep."""


class ConfigurationError(MDStepError, ValueError):
    """
    Invalid simulation setup.

    Raised before any step runs: box too small for cutoff + skin,
    non-positive time step or particle count, unknown integrator, etc.
    """


class NumericalInstability(MDStepError, ArithmeticError):
    """
    A pair separation collapsed toward zero during force evaluation.

    Attributes:
        pair: Particle ids (i, j) of the offending pair.
        distance: Separation at which the pair was detected.
    """

    def __init__(self, pair: tuple[int, int], distance: float) -> None:
        self.pair = (int(pair[0]), int(pair[1]))
        self.distance = float(distance)
        super().__init__(
            f"pair {self.pair} collapsed to distance {self.distance:.3e}; "
            "force is unbounded"
        )


class ThreadPoolError(MDStepError, RuntimeError):
    """
    A force worker failed before the join barrier.

    Attributes:
        worker: Index of the failing worker partition.
    """

    def __init__(self, worker: int, message: str) -> None:
        self.worker = worker
        super().__init__(f"worker {worker} failed: {message}")
