"""Base interface for pair potentials."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import NDArray


class PairPotential(ABC):
    """
    Abstract base class for short-range, central pair potentials.

    A potential only maps squared separations to force and energy terms;
    pair selection, cutoff checks and accumulation belong to the force
    evaluator.
    """

    @abstractmethod
    def pair_terms(
        self, r_sq: NDArray[np.floating]
    ) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """
        Evaluate the potential for a batch of pairs.

        Args:
            r_sq: Squared pair separations, shape (M,).

        Returns:
            Tuple of (f_over_r, energy), each shape (M,). The force on
            particle i from j is f_over_r * (r_i - r_j); the virial
            contribution of the pair is f_over_r * r_sq.
        """
        ...

    @property
    @abstractmethod
    def natural_cutoff(self) -> float | None:
        """Cutoff the potential was parameterized for, if any."""
        ...
