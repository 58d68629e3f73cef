"""
mdstep - neighbor-list, force and integration core of a classical MD simulator.

Design Principles:
- Explicitly owned particle state threaded through every component
- O(N) pair search via cell lists and skin-buffered Verlet lists
- Deterministic force evaluation, serial or fork-join threaded
- One integrator protocol (predict / forces / correct) for every scheme

Quick Start:
    >>> from mdstep import simulate
    >>> result = simulate.lj_fluid(n_particles=100, dim=2, n_steps=200)
    >>> print(f"Rebuilds: {result.n_rebuilds}")
"""

__version__ = "0.1.0"

# High-level APIs
from . import simulate
from .config import SimulationConfig
from .engines import StepScheduler
from .exceptions import (
    ConfigurationError,
    MDStepError,
    NumericalInstability,
    ThreadPoolError,
)
from .forcefields import ForceEvaluator, LennardJones, ThreadedForceEvaluator
from .integrators import LeapfrogIntegrator, PredictorCorrectorIntegrator
from .neighborlists import CellList, NeighborList, RebuildTrigger

# Core components for advanced users
from .system import Boundary, ParticleState, SimulationCell

__all__ = [
    "simulate",
    "SimulationConfig",
    "StepScheduler",
    "SimulationCell",
    "Boundary",
    "ParticleState",
    "CellList",
    "NeighborList",
    "RebuildTrigger",
    "LennardJones",
    "ForceEvaluator",
    "ThreadedForceEvaluator",
    "LeapfrogIntegrator",
    "PredictorCorrectorIntegrator",
    "MDStepError",
    "ConfigurationError",
    "NumericalInstability",
    "ThreadPoolError",
]
