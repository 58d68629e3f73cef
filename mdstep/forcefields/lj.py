"""Lennard-Jones pair potential."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .base import PairPotential

WCA_CUTOFF = 2.0 ** (1.0 / 6.0)


class LennardJones(PairPotential):
    """
    Lennard-Jones 12-6 potential.

    V(r) = 4 * epsilon * [(sigma/r)^12 - (sigma/r)^6] - V_shift

    In reduced units (epsilon = sigma = 1) the force magnitude is
    48/r^13 - 24/r^7.

    Attributes:
        epsilon: Well depth.
        sigma: Size parameter.
        shift_cutoff: If set, energies are shifted to vanish at this
            separation. Forces are unaffected.
    """

    def __init__(
        self,
        epsilon: float = 1.0,
        sigma: float = 1.0,
        shift_cutoff: float | None = None,
    ) -> None:
        """
        Initialize Lennard-Jones potential.

        Args:
            epsilon: Well depth.
            sigma: Size parameter.
            shift_cutoff: Separation at which the shifted energy is zero.
        """
        if epsilon <= 0 or sigma <= 0:
            raise ValueError(f"epsilon and sigma must be positive, got {epsilon}, {sigma}")
        self.epsilon = float(epsilon)
        self.sigma = float(sigma)
        self.shift_cutoff = shift_cutoff
        self._energy_shift = 0.0
        if shift_cutoff is not None:
            _, energy = self._unshifted(np.array([shift_cutoff**2]))
            self._energy_shift = float(energy[0])

    @classmethod
    def wca(cls, epsilon: float = 1.0, sigma: float = 1.0) -> LennardJones:
        """Purely repulsive soft-sphere variant, cut and shifted at 2^(1/6) sigma."""
        return cls(epsilon, sigma, shift_cutoff=WCA_CUTOFF * sigma)

    @property
    def natural_cutoff(self) -> float | None:
        return self.shift_cutoff

    @property
    def energy_shift(self) -> float:
        """Return the constant subtracted from every pair energy."""
        return self._energy_shift

    def _unshifted(
        self, r_sq: NDArray[np.floating]
    ) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        sr2 = self.sigma**2 / r_sq
        sr6 = sr2**3
        f_over_r = 48.0 * self.epsilon * sr6 * (sr6 - 0.5) / r_sq
        energy = 4.0 * self.epsilon * sr6 * (sr6 - 1.0)
        return f_over_r, energy

    def pair_terms(
        self, r_sq: NDArray[np.floating]
    ) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Compute force/r and (shifted) energy for squared separations."""
        f_over_r, energy = self._unshifted(np.asarray(r_sq, dtype=np.float64))
        return f_over_r, energy - self._energy_shift
