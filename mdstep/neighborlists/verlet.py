"""Verlet neighbor list built from a cell list and reused via a skin buffer."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..system.vectors import norms, squared_norms, two_largest

if TYPE_CHECKING:
    from ..system import ParticleState, SimulationCell
    from .cell import CellList

logger = logging.getLogger(__name__)


class RebuildTrigger(str, Enum):
    """
    Staleness rule for the neighbor list.

    TWO_LARGEST: rebuild when the two largest displacements since the last
        rebuild sum to more than the skin. Two particles can close their
        separation by at most that sum, so no pair enters the cutoff unseen.
    MAX: relaxed rule, rebuild when twice the largest displacement exceeds
        the skin.
    """

    TWO_LARGEST = "two_largest"
    MAX = "max"


class NeighborList:
    """
    Verlet pair list with skin distance.

    Pairs are collected over the cell-list stencil using the larger radius
    cutoff + skin, so the list stays valid while particles move less than
    the skin allows. Pairs are stored as an (M, 2) array with i < j per row,
    sorted, so force evaluation order is reproducible.

    Attributes:
        _cutoff: Interaction cutoff distance.
        skin: Additional buffer distance.
        trigger: Staleness rule used by should_rebuild().
        _pairs: Cached neighbor pairs.
        _n_rebuilds: Number of rebuilds so far.
    """

    def __init__(
        self,
        cutoff: float,
        skin: float = 0.3,
        trigger: RebuildTrigger | str = RebuildTrigger.TWO_LARGEST,
    ) -> None:
        """
        Initialize neighbor list.

        Args:
            cutoff: Interaction cutoff distance.
            skin: Buffer distance. skin <= 0 means rebuild every step.
            trigger: Staleness rule.
        """
        self._cutoff = cutoff
        self.skin = skin
        self._list_cutoff = cutoff + max(skin, 0.0)
        self.trigger = RebuildTrigger(trigger)

        self._pairs: NDArray[np.integer] = np.empty((0, 2), dtype=np.int64)
        self._neighbors: list[NDArray[np.integer]] | None = None
        self._n_particles = 0
        self._n_rebuilds = 0

        if skin <= 0:
            logger.warning(
                "skin %.3g <= 0: neighbor list will be rebuilt every step", skin
            )
        if self.trigger is RebuildTrigger.MAX:
            logger.warning("using relaxed max-displacement rebuild trigger")

    @property
    def cutoff(self) -> float:
        """Return the interaction cutoff distance."""
        return self._cutoff

    @property
    def list_cutoff(self) -> float:
        """Return the neighbor list cutoff (cutoff + skin)."""
        return self._list_cutoff

    @property
    def n_pairs(self) -> int:
        """Return the number of neighbor pairs."""
        return len(self._pairs)

    @property
    def n_rebuilds(self) -> int:
        """Return how many times the list has been rebuilt."""
        return self._n_rebuilds

    @property
    def is_built(self) -> bool:
        """Check whether rebuild() has been called."""
        return self._n_rebuilds > 0

    def rebuild(
        self,
        state: ParticleState,
        cell_list: CellList,
        cell: SimulationCell,
    ) -> None:
        """
        Rebuild the pair list from a freshly built cell list.

        Every pair within cutoff + skin (minimum image) at this moment is
        recorded. Resets every particle's displacement accumulator.

        Args:
            state: Particle state; its displacements are zeroed.
            cell_list: Cell list built from the current positions.
            cell: Simulation cell.
        """
        if cell_list.n_particles != state.n_particles:
            raise RuntimeError(
                f"cell list holds {cell_list.n_particles} particles, "
                f"state has {state.n_particles}; build the cell list first"
            )

        positions = state.positions
        list_cutoff_sq = self._list_cutoff**2
        chunks: list[NDArray[np.integer]] = []

        for members_a, members_b, same_cell in cell_list.cell_pairs():
            if same_cell:
                if len(members_a) < 2:
                    continue
                ia, ib = np.triu_indices(len(members_a), k=1)
                i_idx, j_idx = members_a[ia], members_a[ib]
            else:
                i_idx = np.repeat(members_a, len(members_b))
                j_idx = np.tile(members_b, len(members_a))

            dr = cell.minimum_image(positions[j_idx], positions[i_idx])
            keep = squared_norms(dr) <= list_cutoff_sq
            if np.any(keep):
                chunks.append(np.column_stack((i_idx[keep], j_idx[keep])))

        if chunks:
            pairs = np.concatenate(chunks)
            pairs = np.sort(pairs, axis=1)
            order = np.lexsort((pairs[:, 1], pairs[:, 0]))
            self._pairs = np.ascontiguousarray(pairs[order])
        else:
            self._pairs = np.empty((0, 2), dtype=np.int64)

        self._neighbors = None
        self._n_particles = state.n_particles
        state.displacements[...] = 0.0
        self._n_rebuilds += 1

        logger.debug(
            "neighbor list rebuilt (#%d): %d pairs within %.4g",
            self._n_rebuilds,
            len(self._pairs),
            self._list_cutoff,
        )

    def should_rebuild(self, state: ParticleState) -> bool:
        """
        Check whether the list may have gone stale.

        Pure predicate; the list is not modified.

        Args:
            state: Particle state with displacement accumulators.

        Returns:
            True if the list must be rebuilt before the next force evaluation.
        """
        if not self.is_built or state.n_particles != self._n_particles:
            return True
        if self.skin <= 0:
            return True

        largest, second = two_largest(norms(state.displacements))
        if self.trigger is RebuildTrigger.MAX:
            return 2.0 * largest > self.skin
        return largest + second > self.skin

    def get_pairs(self) -> NDArray[np.integer]:
        """
        Get all neighbor pairs.

        Returns:
            Array of shape (N_pairs, 2) with (i, j) pairs where i < j.
        """
        return self._pairs

    def get_neighbors(self, particle_index: int) -> NDArray[np.integer]:
        """
        Get neighbors of a specific particle.

        Args:
            particle_index: Index of the particle to query.

        Returns:
            Sorted array of neighbor particle ids.
        """
        if self._neighbors is None:
            self._neighbors = self._per_particle_neighbors()
        if not self._neighbors:
            return np.array([], dtype=np.int64)
        return self._neighbors[particle_index]

    def _per_particle_neighbors(self) -> list[NDArray[np.integer]]:
        neighbors: list[list[int]] = [[] for _ in range(self._n_particles)]
        for i, j in self._pairs:
            neighbors[i].append(int(j))
            neighbors[j].append(int(i))
        return [np.array(sorted(nbrs), dtype=np.int64) for nbrs in neighbors]
