"""Pairwise force evaluation over a neighbor list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..exceptions import ConfigurationError, NumericalInstability
from ..parallel import ParallelBackend, get_backend
from ..system.vectors import squared_norms

if TYPE_CHECKING:
    from ..neighborlists import NeighborList
    from ..system import ParticleState, SimulationCell
    from .base import PairPotential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForceResult:
    """Running totals produced by one evaluate() call."""

    potential_energy: float
    virial: float
    n_interactions: int


@dataclass
class _PartialSums:
    """Private accumulator of one pair partition."""

    forces: NDArray[np.floating]
    potential_energy: float
    virial: float
    n_interactions: int


class ForceEvaluator:
    """
    Computes pair forces, potential energy and virial from a neighbor list.

    For every cached pair the minimum-image separation is recomputed and
    the potential applied only if r^2 < cutoff^2, so pairs that drifted
    into the skin region contribute nothing. Contributions are equal and
    opposite on the two particles. Accumulation order is fixed by the pair
    order, which makes results bit-for-bit reproducible.

    Attributes:
        potential: Pair potential.
        cutoff: Interaction cutoff.
        min_distance: Separation below which a pair is treated as a
            numerical blow-up.
    """

    def __init__(
        self,
        potential: PairPotential,
        cutoff: float,
        min_distance: float = 0.1,
    ) -> None:
        """
        Initialize force evaluator.

        Args:
            potential: Pair potential.
            cutoff: Interaction cutoff distance.
            min_distance: Instability threshold on pair separation.
        """
        if cutoff <= 0:
            raise ConfigurationError(f"cutoff must be positive, got {cutoff}")
        if min_distance < 0:
            raise ConfigurationError(f"min_distance must be >= 0, got {min_distance}")
        self.potential = potential
        self.cutoff = cutoff
        self.min_distance = min_distance

    def _accumulate(
        self,
        pairs: NDArray[np.integer],
        positions: NDArray[np.floating],
        cell: SimulationCell,
    ) -> _PartialSums:
        """Evaluate a block of pairs into a fresh force buffer."""
        forces = np.zeros_like(positions)
        if len(pairs) == 0:
            return _PartialSums(forces, 0.0, 0.0, 0)

        i_idx = pairs[:, 0]
        j_idx = pairs[:, 1]
        # r_i - r_j under minimum image
        dr = cell.minimum_image(positions[j_idx], positions[i_idx])
        r_sq = squared_norms(dr)

        mask = r_sq < self.cutoff**2
        if not np.any(mask):
            return _PartialSums(forces, 0.0, 0.0, 0)
        i_idx, j_idx, dr, r_sq = i_idx[mask], j_idx[mask], dr[mask], r_sq[mask]

        collapsed = r_sq < self.min_distance**2
        if np.any(collapsed):
            k = int(np.argmax(collapsed))
            raise NumericalInstability((i_idx[k], j_idx[k]), np.sqrt(r_sq[k]))

        with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
            f_over_r, energy = self.potential.pair_terms(r_sq)
        bad = ~np.isfinite(f_over_r)
        if np.any(bad):
            k = int(np.argmax(bad))
            raise NumericalInstability((i_idx[k], j_idx[k]), np.sqrt(r_sq[k]))

        pair_forces = f_over_r[:, np.newaxis] * dr

        # Newton's third law
        np.add.at(forces, i_idx, pair_forces)
        np.add.at(forces, j_idx, -pair_forces)

        return _PartialSums(
            forces=forces,
            potential_energy=float(np.sum(energy)),
            virial=float(np.sum(f_over_r * r_sq)),
            n_interactions=len(i_idx),
        )

    def evaluate(
        self,
        state: ParticleState,
        neighbor_list: NeighborList,
        cell: SimulationCell,
    ) -> ForceResult:
        """
        Recompute accelerations of every particle.

        Accelerations are zeroed first and then overwritten in a single
        assignment once all pair contributions are summed.

        Args:
            state: Particle state; accelerations are replaced.
            neighbor_list: Neighbor list built for the current positions.
            cell: Simulation cell.

        Returns:
            ForceResult with potential energy, virial and interaction count.

        Raises:
            NumericalInstability: If a pair within cutoff is closer than
                min_distance or yields a non-finite force.
        """
        state.accelerations[...] = 0.0
        partial = self._accumulate(neighbor_list.get_pairs(), state.positions, cell)
        state.accelerations[...] = partial.forces / state.masses[:, np.newaxis]
        return ForceResult(partial.potential_energy, partial.virial, partial.n_interactions)


class ThreadedForceEvaluator(ForceEvaluator):
    """
    Force evaluator sharded across a worker pool.

    The pair array is split into contiguous partitions, one per worker.
    Each worker writes into its own force buffer and its own energy/virial
    totals, never into the particle array. After the join barrier a single
    reduction sums the buffers in partition order and stores the
    accelerations. Results match ForceEvaluator up to floating-point
    summation order.
    """

    def __init__(
        self,
        potential: PairPotential,
        cutoff: float,
        min_distance: float = 0.1,
        backend: ParallelBackend | str | None = None,
        **backend_kwargs,
    ) -> None:
        """
        Initialize threaded force evaluator.

        Args:
            potential: Pair potential.
            cutoff: Interaction cutoff distance.
            min_distance: Instability threshold on pair separation.
            backend: Parallel backend or backend name ("serial", "threads").
            **backend_kwargs: Passed to the backend when created by name.
        """
        super().__init__(potential, cutoff, min_distance)
        self.backend = get_backend(backend, **backend_kwargs)

    @property
    def n_workers(self) -> int:
        """Return the worker count of the backend."""
        return self.backend.n_workers

    def evaluate(
        self,
        state: ParticleState,
        neighbor_list: NeighborList,
        cell: SimulationCell,
    ) -> ForceResult:
        """
        Recompute accelerations using the worker pool.

        Raises:
            NumericalInstability: Propagated from the worker that found it.
            ThreadPoolError: If any worker failed before the barrier.
        """
        state.accelerations[...] = 0.0
        pairs = neighbor_list.get_pairs()
        positions = state.positions

        partitions = [
            pairs[part] for part in self.backend.partition_pairs(len(pairs))
        ]
        results = self.backend.map_partitions(
            lambda block: self._accumulate(block, positions, cell), partitions
        )

        forces = self.backend.reduce_sum([r.forces for r in results])
        state.accelerations[...] = forces / state.masses[:, np.newaxis]

        logger.debug(
            "%d pairs evaluated in %d partitions on %s backend",
            len(pairs),
            len(partitions),
            self.backend.name,
        )
        return ForceResult(
            potential_energy=float(sum(r.potential_energy for r in results)),
            virial=float(sum(r.virial for r in results)),
            n_interactions=sum(r.n_interactions for r in results),
        )
