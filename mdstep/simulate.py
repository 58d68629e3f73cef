"""
Simple high-level simulation API.

Wires every component from a SimulationConfig so a run needs only a
configuration and, optionally, an initial particle array.

Example:
    >>> from mdstep import simulate
    >>> result = simulate.lj_fluid(n_particles=100, dim=2, n_steps=200)
    >>> print(f"Relative energy drift: {result.energy_drift:.2e}")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .config import SimulationConfig
from .engines import StepScheduler
from .exceptions import ConfigurationError
from .forcefields import ForceEvaluator, LennardJones, ThreadedForceEvaluator
from .integrators import (
    Integrator,
    LeapfrogIntegrator,
    PredictorCorrectorIntegrator,
    VelocityRescaleThermostat,
)
from .lattice import lattice_state
from .neighborlists import CellList, NeighborList
from .parallel import backend_for_workers
from .system import ParticleState

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Results from a simulation run."""

    # Energy time series, one entry per completed step
    kinetic_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    potential_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    total_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    virial: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    momentum: NDArray[np.floating] = field(default_factory=lambda: np.array([]))

    # Summary statistics
    mean_temperature: float = 0.0
    energy_drift: float = 0.0
    n_rebuilds: int = 0

    # Final particle positions and velocities
    positions: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    velocities: NDArray[np.floating] = field(default_factory=lambda: np.array([]))

    # Metadata
    n_particles: int = 0
    n_steps: int = 0
    timestep: float = 0.0


def _make_integrator(config: SimulationConfig) -> Integrator:
    if config.integrator == "leapfrog":
        return LeapfrogIntegrator(dt=config.timestep)
    return PredictorCorrectorIntegrator(dt=config.timestep, order=config.integrator_order)


def _make_evaluator(config: SimulationConfig) -> ForceEvaluator:
    potential = LennardJones(
        epsilon=config.epsilon,
        sigma=config.sigma,
        shift_cutoff=config.cutoff if config.shift_potential else None,
    )
    if config.n_workers == 1:
        return ForceEvaluator(potential, config.cutoff, config.min_pair_distance)
    return ThreadedForceEvaluator(
        potential,
        config.cutoff,
        config.min_pair_distance,
        backend=backend_for_workers(config.n_workers),
    )


def build_scheduler(
    config: SimulationConfig | Mapping[str, Any],
    state: ParticleState | None = None,
    seed: int | None = 42,
) -> StepScheduler:
    """
    Assemble a StepScheduler from a configuration.

    Args:
        config: Validated configuration or a plain mapping.
        state: Initial particle array. Defaults to a cubic lattice at the
            configured temperature.
        seed: Seed for the default initial velocities.

    Returns:
        Ready-to-run scheduler with initial forces computed.
    """
    if not isinstance(config, SimulationConfig):
        config = SimulationConfig.from_mapping(config)

    cell = config.cell
    if state is None:
        state = lattice_state(config.n_particles, cell, config.temperature, seed)
    if state.n_particles != config.n_particles:
        raise ConfigurationError(
            f"initial state has {state.n_particles} particles, "
            f"configuration expects {config.n_particles}"
        )

    thermostat = None
    if config.thermostat_interval > 0:
        thermostat = VelocityRescaleThermostat(
            config.temperature, interval=config.thermostat_interval
        )

    return StepScheduler(
        state=state,
        cell=cell,
        integrator=_make_integrator(config),
        evaluator=_make_evaluator(config),
        cell_list=CellList(cutoff=config.cutoff, skin=config.skin),
        neighbor_list=NeighborList(
            cutoff=config.cutoff, skin=config.skin, trigger=config.rebuild_trigger
        ),
        rebuild_check_interval=config.rebuild_check_interval,
        thermostat=thermostat,
    )


def run(
    config: SimulationConfig | Mapping[str, Any],
    state: ParticleState | None = None,
    seed: int | None = 42,
) -> SimulationResult:
    """
    Run config.n_steps steps and collect per-step observables.

    Args:
        config: Validated configuration or a plain mapping.
        state: Initial particle array; a lattice by default.
        seed: Seed for the default initial velocities.

    Returns:
        SimulationResult with energy series and summary statistics.
    """
    if not isinstance(config, SimulationConfig):
        config = SimulationConfig.from_mapping(config)
    scheduler = build_scheduler(config, state, seed)

    kinetic, potential, virial, momentum, temperature = [], [], [], [], []
    for _ in range(config.n_steps):
        scheduler.step()
        snapshot = scheduler.state
        kinetic.append(snapshot.kinetic_energy)
        potential.append(scheduler.potential_energy)
        virial.append(scheduler.virial)
        momentum.append(snapshot.momentum)
        temperature.append(snapshot.temperature)

    kinetic_arr = np.array(kinetic)
    potential_arr = np.array(potential)
    total = kinetic_arr + potential_arr

    drift = 0.0
    if len(total) > 1 and abs(total[0]) > 0:
        drift = float((total[-1] - total[0]) / abs(total[0]))

    final = scheduler.state
    result = SimulationResult(
        kinetic_energy=kinetic_arr,
        potential_energy=potential_arr,
        total_energy=total,
        virial=np.array(virial),
        momentum=np.array(momentum),
        mean_temperature=float(np.mean(temperature)) if temperature else 0.0,
        energy_drift=drift,
        n_rebuilds=scheduler.n_rebuilds,
        positions=np.array(final.positions),
        velocities=np.array(final.velocities),
        n_particles=config.n_particles,
        n_steps=config.n_steps,
        timestep=config.timestep,
    )
    logger.info(
        "run complete: N=%d, %d steps, drift %.3e, %d rebuilds",
        result.n_particles,
        result.n_steps,
        result.energy_drift,
        result.n_rebuilds,
    )
    return result


def lj_fluid(
    n_particles: int = 512,
    density: float = 0.5,
    temperature: float = 1.0,
    n_steps: int = 1000,
    timestep: float = 0.005,
    cutoff: float = 2.5,
    skin: float = 0.4,
    dim: int = 3,
    integrator: str = "leapfrog",
    n_workers: int = 1,
    shift_potential: bool = False,
    seed: int = 42,
) -> SimulationResult:
    """
    Run a Lennard-Jones fluid in a periodic square/cubic cell.

    Args:
        n_particles: Number of particles (default: 512).
        density: Reduced density N / V (default: 0.5).
        temperature: Initial reduced temperature (default: 1.0).
        n_steps: Number of steps (default: 1000).
        timestep: Integration timestep in reduced units (default: 0.005).
        cutoff: LJ cutoff distance in sigma (default: 2.5).
        skin: Neighbor-list skin (default: 0.4).
        dim: Spatial dimension, 2 or 3 (default: 3).
        integrator: "leapfrog" or "predictor_corrector".
        n_workers: Force-evaluation threads (default: 1).
        shift_potential: Shift the LJ energy to zero at the cutoff so pairs
            crossing it do not make the total energy jump (default: False).
        seed: Random seed for reproducibility (default: 42).

    Returns:
        SimulationResult.
    """
    box_length = (n_particles / density) ** (1.0 / dim)
    config = SimulationConfig(
        n_particles=n_particles,
        box_lengths=(box_length,) * dim,
        cutoff=cutoff,
        skin=skin,
        timestep=timestep,
        integrator=integrator,
        n_workers=n_workers,
        n_steps=n_steps,
        temperature=temperature,
        shift_potential=shift_potential,
    )
    return run(config, seed=seed)
