"""Initial particle arrays: lattice positions and thermal velocities."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .exceptions import ConfigurationError
from .system.state import ParticleState

if TYPE_CHECKING:
    from .system import SimulationCell


def cubic_lattice(n_particles: int, cell: SimulationCell) -> NDArray[np.floating]:
    """
    Place particles on a simple square/cubic lattice filling the cell.

    The lattice has ceil(N^(1/D)) sites per axis; the first N sites in
    row-major order are used. Sites sit at cell-centered coordinates, half
    a spacing away from the faces.

    Args:
        n_particles: Number of particles.
        cell: Simulation cell.

    Returns:
        Positions, shape (N, D).
    """
    if n_particles <= 0:
        raise ConfigurationError(f"particle count must be positive, got {n_particles}")
    dim = cell.dim
    n_side = int(np.ceil(n_particles ** (1.0 / dim) - 1e-9))
    spacing = cell.lengths / n_side

    grid = np.indices((n_side,) * dim).reshape(dim, -1).T[:n_particles]
    return (grid + 0.5) * spacing - 0.5 * cell.lengths


def random_velocities(
    n_particles: int,
    dim: int,
    temperature: float,
    rng: np.random.Generator | None = None,
) -> NDArray[np.floating]:
    """
    Draw velocities with zero net momentum at an exact temperature.

    Unit masses are assumed. For a single particle, or zero temperature,
    all velocities are zero.

    Args:
        n_particles: Number of particles.
        dim: Spatial dimension.
        temperature: Target temperature in reduced units.
        rng: Random generator; a fresh default one if None.

    Returns:
        Velocities, shape (N, D).
    """
    rng = rng if rng is not None else np.random.default_rng()
    if n_particles <= 1 or temperature <= 0:
        return np.zeros((n_particles, dim))

    velocities = rng.normal(0.0, np.sqrt(temperature), (n_particles, dim))
    velocities -= velocities.mean(axis=0)

    n_dof = dim * (n_particles - 1)
    current = np.sum(velocities**2) / n_dof
    if current > 0:
        velocities *= np.sqrt(temperature / current)
    return velocities


def lattice_state(
    n_particles: int,
    cell: SimulationCell,
    temperature: float = 1.0,
    seed: int | None = 42,
    jitter: float = 0.0,
) -> ParticleState:
    """
    Build a complete initial particle array.

    Args:
        n_particles: Number of particles.
        cell: Simulation cell.
        temperature: Initial temperature.
        seed: Seed for velocities and jitter.
        jitter: Half-width of uniform random displacements added to the
            lattice sites.

    Returns:
        New ParticleState with unit masses.
    """
    rng = np.random.default_rng(seed)
    positions = cubic_lattice(n_particles, cell)
    if jitter > 0:
        positions = positions + rng.uniform(-jitter, jitter, positions.shape)
    velocities = random_velocities(n_particles, cell.dim, temperature, rng)
    return ParticleState.create(positions=positions, velocities=velocities)
