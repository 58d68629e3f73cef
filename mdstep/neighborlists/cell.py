"""Cell list: spatial partition of the simulation cell into buckets."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..exceptions import ConfigurationError
from ..system.vectors import grid_index, linear_index

if TYPE_CHECKING:
    from ..system import SimulationCell

logger = logging.getLogger(__name__)

# Half stencils: self plus the neighbor cells whose offsets are
# lexicographically "forward", so every unordered cell pair is visited once.
HALF_STENCIL_2D = np.array(
    [[0, 0], [1, 0], [1, 1], [0, 1], [-1, 1]],
    dtype=np.int64,
)
HALF_STENCIL_3D = np.array(
    [
        [0, 0, 0],
        [1, 0, 0],
        [1, 1, 0],
        [0, 1, 0],
        [-1, 1, 0],
        [0, 0, 1],
        [1, 0, 1],
        [1, 1, 1],
        [0, 1, 1],
        [-1, 1, 1],
        [-1, 0, 1],
        [-1, -1, 1],
        [0, -1, 1],
        [1, -1, 1],
    ],
    dtype=np.int64,
)

MIN_PERIODIC_CELLS = 3


@dataclass(frozen=True)
class Cell:
    """One spatial bucket: grid index and the particle ids inside it."""

    index: tuple[int, ...]
    members: NDArray[np.integer]


def half_stencil(dim: int) -> NDArray[np.integer]:
    """Return the half-stencil offsets (self included) for 2D or 3D."""
    if dim == 2:
        return HALF_STENCIL_2D
    if dim == 3:
        return HALF_STENCIL_3D
    raise ConfigurationError(f"no cell stencil for {dim}D")


def grid_shape(cell: SimulationCell, min_cell_size: float) -> NDArray[np.integer]:
    """
    Number of cells per axis so that every cell edge is >= min_cell_size.

    Raises:
        ConfigurationError: If a periodic axis would hold fewer than three
            cells, which the half stencil needs to avoid double counting.
    """
    if min_cell_size <= 0:
        raise ConfigurationError(f"cell size must be positive, got {min_cell_size}")
    n_cells = np.floor(cell.lengths / min_cell_size).astype(np.int64)
    n_cells = np.maximum(n_cells, 1)
    too_small = cell.periodic_mask & (n_cells < MIN_PERIODIC_CELLS)
    if np.any(too_small):
        axes = np.flatnonzero(too_small).tolist()
        raise ConfigurationError(
            f"cell lengths {cell.lengths.tolist()} too small for interaction range "
            f"{min_cell_size:.4g}: periodic axes {axes} need at least "
            f"{MIN_PERIODIC_CELLS * min_cell_size:.4g}"
        )
    return n_cells


class CellList:
    """
    Cell (linked-cell) partition of the particles.

    Divides the simulation cell into buckets with edges >= cutoff + skin.
    Only particles in the same or adjacent buckets can be neighbors, so the
    candidate-pair search is O(N) instead of O(N^2).

    Buckets are stored as one array of particle ids sorted by cell, plus the
    offset of each cell's first entry. Both are replaced wholesale by build().

    Attributes:
        _cutoff: Interaction cutoff distance.
        skin: Additional buffer distance.
        _n_cells: Number of cells along each axis.
        _cell_size: Cell edge per axis.
        _sorted_ids: Particle ids grouped by cell.
        _starts: Offset into _sorted_ids of each cell, length n_total + 1.
    """

    def __init__(self, cutoff: float, skin: float = 0.3) -> None:
        """
        Initialize cell list.

        Args:
            cutoff: Interaction cutoff distance.
            skin: Buffer distance; negative values count as zero.
        """
        self._cutoff = cutoff
        self.skin = skin
        self._list_cutoff = cutoff + max(skin, 0.0)

        self._n_cells: NDArray[np.integer] = np.ones(3, dtype=np.int64)
        self._cell_size: NDArray[np.floating] = np.zeros(3, dtype=np.float64)
        self._periodic: NDArray[np.bool_] = np.ones(3, dtype=bool)

        self._sorted_ids: NDArray[np.integer] = np.empty(0, dtype=np.int64)
        self._starts: NDArray[np.integer] = np.zeros(1, dtype=np.int64)
        self._n_particles = 0

    @property
    def cutoff(self) -> float:
        """Return the interaction cutoff distance."""
        return self._cutoff

    @property
    def list_cutoff(self) -> float:
        """Return the minimum cell edge (cutoff + skin)."""
        return self._list_cutoff

    @property
    def n_cells(self) -> tuple[int, ...]:
        """Return number of cells along each axis."""
        return tuple(int(n) for n in self._n_cells)

    @property
    def cell_size(self) -> NDArray[np.floating]:
        """Return cell edge length per axis."""
        return self._cell_size.copy()

    @property
    def n_particles(self) -> int:
        """Return number of particles assigned by the last build."""
        return self._n_particles

    @property
    def is_built(self) -> bool:
        """Check whether build() has been called."""
        return len(self._starts) > 1

    def cell_indices(
        self, positions: ArrayLike, cell: SimulationCell
    ) -> NDArray[np.integer]:
        """
        Grid index of each position under the current grid.

        Args:
            positions: Positions, shape (N, D).
            cell: Simulation cell.

        Returns:
            Integer grid indices, shape (N, D).
        """
        wrapped = cell.wrap_positions(positions)
        shifted = wrapped + 0.5 * cell.lengths
        index = np.floor(shifted / self._cell_size).astype(np.int64)
        # Wall particles sitting exactly on the upper face land one past the grid
        return np.clip(index, 0, self._n_cells - 1)

    def build(self, positions: ArrayLike, cell: SimulationCell) -> None:
        """
        Assign every particle to exactly one cell.

        Previous bucket contents are discarded.

        Args:
            positions: Particle positions, shape (N, D).
            cell: Simulation cell.

        Raises:
            ConfigurationError: If the cell is too small for cutoff + skin
                along a periodic axis.
        """
        positions = np.asarray(positions, dtype=np.float64)
        if positions.ndim != 2 or positions.shape[1] != cell.dim:
            raise ConfigurationError(
                f"positions shape {positions.shape} does not match {cell.dim}D cell"
            )

        self._n_cells = grid_shape(cell, self._list_cutoff)
        self._cell_size = cell.lengths / self._n_cells
        self._periodic = cell.periodic_mask
        self._n_particles = len(positions)

        total_cells = int(np.prod(self._n_cells))
        if self._n_particles:
            linear = linear_index(self.cell_indices(positions, cell), self._n_cells)
        else:
            linear = np.empty(0, dtype=np.int64)

        # Stable sort keeps ids ascending within each bucket
        self._sorted_ids = np.argsort(linear, kind="stable")
        self._starts = np.searchsorted(
            linear[self._sorted_ids], np.arange(total_cells + 1)
        )

        logger.debug(
            "cell list built: %d particles in %s cells (edge %s)",
            self._n_particles,
            self.n_cells,
            np.round(self._cell_size, 4).tolist(),
        )

    def _members_linear(self, linear: int) -> NDArray[np.integer]:
        return self._sorted_ids[self._starts[linear] : self._starts[linear + 1]]

    def members(self, index: tuple[int, ...]) -> NDArray[np.integer]:
        """Return ids of the particles in the cell with the given grid index."""
        return self._members_linear(int(linear_index(np.asarray(index), self._n_cells)))

    def cells(self) -> Iterator[Cell]:
        """Iterate over all cells, empty ones included."""
        for linear in range(len(self._starts) - 1):
            yield Cell(grid_index(linear, self._n_cells), self._members_linear(linear))

    def neighbor_cells(self, index: tuple[int, ...]) -> list[tuple[int, ...]]:
        """
        Cells reached from a cell by the half stencil, itself first.

        Periodic axes wrap the cell index around the grid; on wall axes
        neighbors that fall off the grid are dropped.
        """
        base = np.asarray(index, dtype=np.int64)
        stencil = half_stencil(len(base))
        neighbors = []
        for offset in stencil:
            target = base + offset
            wrapped = np.where(self._periodic, target % self._n_cells, target)
            if np.any((wrapped < 0) | (wrapped >= self._n_cells)):
                continue
            neighbors.append(tuple(int(c) for c in wrapped))
        return neighbors

    def cell_pairs(
        self,
    ) -> Iterator[tuple[NDArray[np.integer], NDArray[np.integer], bool]]:
        """
        Iterate over every unordered pair of stencil-adjacent, non-empty cells.

        Yields:
            Tuples (members_a, members_b, same_cell). For same_cell pairs
            both arrays are the same bucket.
        """
        if not self.is_built:
            raise RuntimeError("Cell list has not been built yet")

        for cell in self.cells():
            if len(cell.members) == 0:
                continue
            for neighbor in self.neighbor_cells(cell.index):
                if neighbor == cell.index:
                    yield cell.members, cell.members, True
                    continue
                other = self.members(neighbor)
                if len(other):
                    yield cell.members, other, False
