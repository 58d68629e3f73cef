"""Particle state and simulation cell management."""

from .box import Boundary, SimulationCell
from .state import FrozenParticleState, ParticleState

__all__ = ["Boundary", "SimulationCell", "ParticleState", "FrozenParticleState"]
