"""Run configuration supplied once before stepping begins."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .exceptions import ConfigurationError
from .integrators.predictor_corrector import COEFFICIENTS
from .neighborlists.cell import grid_shape
from .neighborlists.verlet import RebuildTrigger
from .system import Boundary, SimulationCell

INTEGRATORS = ("leapfrog", "predictor_corrector")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Validated run parameters in reduced units.

    All checks run in __post_init__, so an instance that exists is a
    configuration no step can reject.

    Attributes:
        n_particles: Number of particles.
        box_lengths: Cell edge per axis; its length sets the dimension.
        boundary: One policy for all axes or one per axis.
        cutoff: Interaction cutoff.
        skin: Neighbor-list skin; <= 0 rebuilds every step.
        timestep: Integration time step.
        integrator: "leapfrog" or "predictor_corrector".
        integrator_order: Order of the predictor-corrector scheme.
        n_workers: Force-evaluation worker threads (1 = serial).
        n_steps: Steps to run.
        rebuild_check_interval: Check neighbor-list staleness every this
            many steps.
        rebuild_trigger: "two_largest" or the relaxed "max".
        epsilon: Lennard-Jones well depth.
        sigma: Lennard-Jones size parameter.
        shift_potential: Shift pair energies to zero at the cutoff.
        min_pair_distance: Separation treated as a numerical blow-up.
        temperature: Target temperature for initial velocities.
        thermostat_interval: Rescale velocities to `temperature` every this
            many steps; 0 disables the thermostat.
    """

    n_particles: int
    box_lengths: tuple[float, ...]
    boundary: str | tuple[str, ...] = "periodic"
    cutoff: float = 2.5
    skin: float = 0.4
    timestep: float = 0.005
    integrator: str = "leapfrog"
    integrator_order: int = 4
    n_workers: int = 1
    n_steps: int = 1000
    rebuild_check_interval: int = 1
    rebuild_trigger: str = RebuildTrigger.TWO_LARGEST.value
    epsilon: float = 1.0
    sigma: float = 1.0
    shift_potential: bool = False
    min_pair_distance: float = 0.1
    temperature: float = 1.0
    thermostat_interval: int = 0
    _cell: SimulationCell = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Normalize and validate every field."""
        object.__setattr__(self, "box_lengths", tuple(float(x) for x in self.box_lengths))
        if not isinstance(self.boundary, str):
            object.__setattr__(self, "boundary", tuple(self.boundary))

        if self.n_particles <= 0:
            raise ConfigurationError(
                f"particle count must be positive, got {self.n_particles}"
            )
        if not self.timestep > 0:
            raise ConfigurationError(f"time step must be positive, got {self.timestep}")
        if not self.cutoff > 0:
            raise ConfigurationError(f"cutoff must be positive, got {self.cutoff}")
        if not math.isfinite(self.skin):
            raise ConfigurationError(f"skin must be finite, got {self.skin}")
        if self.n_steps < 0:
            raise ConfigurationError(f"step count must be >= 0, got {self.n_steps}")
        if self.n_workers < 1:
            raise ConfigurationError(f"worker count must be >= 1, got {self.n_workers}")
        if self.rebuild_check_interval < 1:
            raise ConfigurationError(
                f"rebuild check interval must be >= 1, got {self.rebuild_check_interval}"
            )
        if self.thermostat_interval < 0:
            raise ConfigurationError(
                f"thermostat interval must be >= 0, got {self.thermostat_interval}"
            )
        if self.integrator not in INTEGRATORS:
            raise ConfigurationError(
                f"unknown integrator {self.integrator!r}; available: {INTEGRATORS}"
            )
        if self.integrator == "predictor_corrector" and self.integrator_order not in COEFFICIENTS:
            raise ConfigurationError(
                f"predictor-corrector order {self.integrator_order} not supported"
            )
        try:
            RebuildTrigger(self.rebuild_trigger)
        except ValueError as exc:
            raise ConfigurationError(
                f"unknown rebuild trigger {self.rebuild_trigger!r}"
            ) from exc
        if not 0 <= self.min_pair_distance < self.cutoff:
            raise ConfigurationError(
                f"min_pair_distance must lie in [0, cutoff), got {self.min_pair_distance}"
            )
        if self.epsilon <= 0 or self.sigma <= 0:
            raise ConfigurationError("epsilon and sigma must be positive")
        if self.temperature < 0:
            raise ConfigurationError(f"temperature must be >= 0, got {self.temperature}")

        cell = SimulationCell.from_lengths(self.box_lengths, self.boundary)
        grid_shape(cell, self.list_cutoff)
        object.__setattr__(self, "_cell", cell)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> SimulationConfig:
        """
        Build a configuration from a plain mapping.

        Raises:
            ConfigurationError: On unknown or missing keys, or invalid values.
        """
        known = {f.name for f in fields(cls) if f.init}
        unknown = set(mapping) - known
        if unknown:
            raise ConfigurationError(f"unknown configuration keys: {sorted(unknown)}")
        try:
            return cls(**dict(mapping))
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a plain dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.init}

    @property
    def dim(self) -> int:
        """Return the number of spatial dimensions."""
        return len(self.box_lengths)

    @property
    def list_cutoff(self) -> float:
        """Return cutoff + skin (skin clamped at zero)."""
        return self.cutoff + max(self.skin, 0.0)

    @property
    def cell(self) -> SimulationCell:
        """Return the simulation cell described by this configuration."""
        return self._cell

    @property
    def boundaries(self) -> tuple[Boundary, ...]:
        """Return the boundary policy per axis."""
        return self._cell.boundary
