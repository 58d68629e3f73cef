"""Simulation cell geometry and boundary policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..exceptions import ConfigurationError
from .vectors import SUPPORTED_DIMENSIONS

if TYPE_CHECKING:
    from .state import ParticleState


class Boundary(str, Enum):
    """Boundary policy along one axis."""

    PERIODIC = "periodic"
    WALL = "wall"


@dataclass(frozen=True, eq=False)
class SimulationCell:
    """
    Orthorhombic simulation cell in 2 or 3 dimensions.

    Coordinates are centered on the origin: periodic axes hold positions in
    [-L/2, L/2), wall axes in [-L/2, L/2]. The cell is immutable; a barostat
    produces a new cell via resized().

    Attributes:
        lengths: Edge length per axis, shape (D,).
        boundary: Boundary policy per axis.
    """

    lengths: NDArray[np.floating]
    boundary: tuple[Boundary, ...] = ()

    def __post_init__(self) -> None:
        """Validate lengths and normalize the boundary tuple."""
        lengths = np.array(self.lengths, dtype=np.float64).reshape(-1)
        if len(lengths) not in SUPPORTED_DIMENSIONS:
            raise ConfigurationError(
                f"cell must be 2D or 3D, got {len(lengths)} lengths"
            )
        if not np.all(np.isfinite(lengths)) or np.any(lengths <= 0):
            raise ConfigurationError(f"cell lengths must be positive, got {lengths}")

        boundary = self.boundary
        if isinstance(boundary, (str, Boundary)):
            boundary = (boundary,) * len(lengths)
        elif len(boundary) == 0:
            boundary = (Boundary.PERIODIC,) * len(lengths)
        try:
            boundary = tuple(Boundary(b) for b in boundary)
        except ValueError as exc:
            raise ConfigurationError(f"unknown boundary policy in {boundary}") from exc
        if len(boundary) != len(lengths):
            raise ConfigurationError(
                f"{len(boundary)} boundary entries for a {len(lengths)}D cell"
            )

        lengths.flags.writeable = False
        object.__setattr__(self, "lengths", lengths)
        object.__setattr__(self, "boundary", boundary)

    @classmethod
    def cubic(
        cls,
        length: float,
        dim: int = 3,
        boundary: Boundary | str = Boundary.PERIODIC,
    ) -> SimulationCell:
        """Create a square/cubic cell with the same policy on every axis."""
        return cls(np.full(dim, float(length)), (Boundary(boundary),) * dim)

    @classmethod
    def from_lengths(
        cls,
        lengths: ArrayLike,
        boundary: Boundary | str | tuple[Boundary | str, ...] = Boundary.PERIODIC,
    ) -> SimulationCell:
        """Create a cell from per-axis lengths."""
        return cls(np.asarray(lengths, dtype=np.float64), boundary)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimulationCell):
            return NotImplemented
        return self.boundary == other.boundary and np.array_equal(
            self.lengths, other.lengths
        )

    def __hash__(self) -> int:
        return hash((tuple(self.lengths), self.boundary))

    @property
    def dim(self) -> int:
        """Return the number of spatial dimensions."""
        return len(self.lengths)

    @property
    def volume(self) -> float:
        """Return cell volume (area in 2D)."""
        return float(np.prod(self.lengths))

    @property
    def periodic_mask(self) -> NDArray[np.bool_]:
        """Boolean mask of periodic axes."""
        return np.array([b is Boundary.PERIODIC for b in self.boundary])

    def is_periodic(self, axis: int) -> bool:
        """Check whether an axis uses periodic wrapping."""
        return self.boundary[axis] is Boundary.PERIODIC

    def wrap(
        self,
        positions: ArrayLike,
        velocities: ArrayLike | None = None,
    ) -> tuple[NDArray[np.floating], NDArray[np.floating] | None]:
        """
        Map positions into canonical form.

        Periodic axes are wrapped into [-L/2, L/2). On wall axes a particle
        past the boundary is clamped onto it and its velocity component is
        turned to point back inside. Applying wrap twice is a no-op.

        Args:
            positions: Positions, shape (N, D).
            velocities: Velocities, shape (N, D). Required for reflection
                on wall axes; untouched axes are copied through.

        Returns:
            Tuple of (wrapped positions, reflected velocities or None).
        """
        positions = np.array(positions, dtype=np.float64)
        if velocities is not None:
            velocities = np.array(velocities, dtype=np.float64)

        half = 0.5 * self.lengths
        periodic = self.periodic_mask

        if np.any(periodic):
            lengths = self.lengths[periodic]
            shifted = positions[:, periodic] + half[periodic]
            wrapped = shifted - lengths * np.floor(shifted / lengths)
            # A tiny negative shift rounds up to exactly L
            wrapped = np.where(wrapped >= lengths, wrapped - lengths, wrapped)
            positions[:, periodic] = wrapped - half[periodic]

        for axis in np.flatnonzero(~periodic):
            low = positions[:, axis] < -half[axis]
            high = positions[:, axis] > half[axis]
            positions[low, axis] = -half[axis]
            positions[high, axis] = half[axis]
            if velocities is not None:
                velocities[low, axis] = np.abs(velocities[low, axis])
                velocities[high, axis] = -np.abs(velocities[high, axis])

        return positions, velocities

    def wrap_positions(self, positions: ArrayLike) -> NDArray[np.floating]:
        """Wrap positions only (no velocity reflection)."""
        return self.wrap(positions)[0]

    def apply_boundary(self, state: ParticleState) -> None:
        """Apply the boundary policy to a particle state in place."""
        positions, velocities = self.wrap(state.positions, state.velocities)
        state.positions[...] = positions
        state.velocities[...] = velocities

    def minimum_image(
        self, r1: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> NDArray[np.floating]:
        """
        Compute displacement r2 - r1 under the minimum-image convention.

        Periodic axes use the nearest periodic image; wall axes use the raw
        difference.

        Args:
            r1: First position(s), shape (D,) or (N, D).
            r2: Second position(s), shape (D,) or (N, D).

        Returns:
            Displacement vector(s).
        """
        dr = np.asarray(r2, dtype=np.float64) - np.asarray(r1, dtype=np.float64)
        periodic = self.periodic_mask
        if np.all(periodic):
            return dr - self.lengths * np.round(dr / self.lengths)
        images = np.where(periodic, np.round(dr / self.lengths), 0.0)
        return dr - self.lengths * images

    def minimum_image_distance(
        self, r1: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> float | NDArray[np.floating]:
        """Compute minimum-image distance(s) between positions."""
        return np.linalg.norm(self.minimum_image(r1, r2), axis=-1)

    def resized(self, scale: float | ArrayLike) -> SimulationCell:
        """
        Return a new cell with lengths multiplied by scale.

        Used by barostat hooks; the current cell is left untouched.
        """
        scale = np.asarray(scale, dtype=np.float64)
        return SimulationCell(self.lengths * scale, self.boundary)
