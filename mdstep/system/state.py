"""Particle array representation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..exceptions import ConfigurationError
from .vectors import SUPPORTED_DIMENSIONS


@dataclass
class ParticleState:
    """
    The particle array: primary mutable state of a run.

    Particle ids are row indices and stay stable for the whole run.
    Quantities are in reduced units (k_B = 1).

    Attributes:
        positions: Particle positions, shape (N, D).
        velocities: Particle velocities, shape (N, D).
        accelerations: Particle accelerations, shape (N, D).
        masses: Particle masses, shape (N,).
        displacements: Net displacement of each particle since the last
            neighbor-list rebuild, shape (N, D).
        time: Current simulation time.
        step: Number of completed steps.
    """

    positions: NDArray[np.floating]
    velocities: NDArray[np.floating]
    accelerations: NDArray[np.floating]
    masses: NDArray[np.floating]
    displacements: NDArray[np.floating]
    time: float = 0.0
    step: int = 0

    def __post_init__(self) -> None:
        """Validate and convert arrays."""
        self.positions = np.asarray(self.positions, dtype=np.float64)
        self.velocities = np.asarray(self.velocities, dtype=np.float64)
        self.accelerations = np.asarray(self.accelerations, dtype=np.float64)
        self.masses = np.asarray(self.masses, dtype=np.float64)
        self.displacements = np.asarray(self.displacements, dtype=np.float64)

        n_particles = len(self.masses)
        if n_particles <= 0:
            raise ConfigurationError("particle count must be positive")
        if self.positions.ndim != 2 or self.positions.shape[1] not in SUPPORTED_DIMENSIONS:
            raise ConfigurationError(
                f"positions must have shape (N, 2) or (N, 3), got {self.positions.shape}"
            )
        shape = (n_particles, self.positions.shape[1])
        for name in ("positions", "velocities", "accelerations", "displacements"):
            if getattr(self, name).shape != shape:
                raise ConfigurationError(
                    f"{name} shape {getattr(self, name).shape} incompatible with "
                    f"{n_particles} particles in {shape[1]}D"
                )
        if np.any(self.masses <= 0):
            raise ConfigurationError("particle masses must be positive")

    @property
    def n_particles(self) -> int:
        """Return number of particles."""
        return len(self.masses)

    @property
    def dim(self) -> int:
        """Return the number of spatial dimensions."""
        return self.positions.shape[1]

    @classmethod
    def create(
        cls,
        positions: ArrayLike,
        velocities: ArrayLike | None = None,
        masses: ArrayLike | None = None,
        accelerations: ArrayLike | None = None,
        time: float = 0.0,
        step: int = 0,
    ) -> ParticleState:
        """
        Create a ParticleState with optional velocity/mass initialization.

        Args:
            positions: Particle positions, shape (N, D).
            velocities: Particle velocities. Defaults to zeros.
            masses: Particle masses. Defaults to ones.
            accelerations: Particle accelerations. Defaults to zeros.
            time: Current simulation time.
            step: Current step number.

        Returns:
            New ParticleState instance.
        """
        positions = np.array(positions, dtype=np.float64)
        if positions.ndim != 2:
            raise ConfigurationError(
                f"positions must have shape (N, D), got {positions.shape}"
            )
        n_particles, dim = positions.shape

        if velocities is None:
            velocities = np.zeros((n_particles, dim), dtype=np.float64)
        if masses is None:
            masses = np.ones(n_particles, dtype=np.float64)
        if accelerations is None:
            accelerations = np.zeros((n_particles, dim), dtype=np.float64)

        return cls(
            positions=positions,
            velocities=np.array(velocities, dtype=np.float64),
            accelerations=np.array(accelerations, dtype=np.float64),
            masses=np.array(masses, dtype=np.float64),
            displacements=np.zeros((n_particles, dim), dtype=np.float64),
            time=time,
            step=step,
        )

    def copy(self) -> ParticleState:
        """Create a deep copy of this state."""
        return ParticleState(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            accelerations=self.accelerations.copy(),
            masses=self.masses.copy(),
            displacements=self.displacements.copy(),
            time=self.time,
            step=self.step,
        )

    def freeze(self) -> FrozenParticleState:
        """Create an immutable snapshot of this state."""
        return FrozenParticleState(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            accelerations=self.accelerations.copy(),
            masses=self.masses.copy(),
            time=self.time,
            step=self.step,
        )

    @property
    def kinetic_energy(self) -> float:
        """Compute total kinetic energy: sum(0.5 * m * v^2)."""
        return _kinetic_energy(self.masses, self.velocities)

    @property
    def momentum(self) -> NDArray[np.floating]:
        """Compute total linear momentum."""
        return np.sum(self.masses[:, np.newaxis] * self.velocities, axis=0)

    @property
    def temperature(self) -> float:
        """
        Instantaneous temperature in reduced units.

        Uses T = 2 * KE / N_dof with N_dof = D * (N - 1), i.e. the
        center-of-mass motion removed. Returns 0 if N <= 1.
        """
        return _temperature(self.masses, self.velocities)


def _kinetic_energy(masses: NDArray[np.floating], velocities: NDArray[np.floating]) -> float:
    return float(0.5 * np.sum(masses[:, np.newaxis] * velocities**2))


def _temperature(masses: NDArray[np.floating], velocities: NDArray[np.floating]) -> float:
    n_particles, dim = velocities.shape
    if n_particles <= 1:
        return 0.0
    n_dof = dim * (n_particles - 1)
    return 2.0 * _kinetic_energy(masses, velocities) / n_dof


@dataclass(frozen=True)
class FrozenParticleState:
    """
    Immutable snapshot of the particle array.

    Handed to external readers after each completed step.
    """

    positions: NDArray[np.floating]
    velocities: NDArray[np.floating]
    accelerations: NDArray[np.floating]
    masses: NDArray[np.floating]
    time: float
    step: int

    def __post_init__(self) -> None:
        """Make arrays read-only."""
        self.positions.flags.writeable = False
        self.velocities.flags.writeable = False
        self.accelerations.flags.writeable = False
        self.masses.flags.writeable = False

    @property
    def n_particles(self) -> int:
        """Return number of particles."""
        return len(self.masses)

    @property
    def kinetic_energy(self) -> float:
        return _kinetic_energy(self.masses, self.velocities)

    @property
    def momentum(self) -> NDArray[np.floating]:
        return np.sum(self.masses[:, np.newaxis] * self.velocities, axis=0)

    @property
    def temperature(self) -> float:
        return _temperature(self.masses, self.velocities)

    def thaw(self) -> ParticleState:
        """Create a mutable copy of this frozen state."""
        return ParticleState.create(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            masses=self.masses.copy(),
            accelerations=self.accelerations.copy(),
            time=self.time,
            step=self.step,
        )
