"""Base interfaces for integrators and post-step modifiers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..system import ParticleState, SimulationCell


class IntegratorPhase(str, Enum):
    """Position of an integrator within one time step."""

    PREDICTOR = "predictor"
    CORRECTOR = "corrector"


class Integrator(ABC):
    """
    Abstract base class for time integration schemes.

    Every scheme follows the same two-phase protocol per step:

        predict(state)   # advance positions, no forces needed
        <forces evaluated at the new positions>
        correct(state)   # fold the new accelerations back in

    The phase state machine rejects calls made out of order. Integrators
    mutate the state they are given and keep no reference to it.
    """

    def __init__(self, dt: float) -> None:
        """
        Initialize integrator.

        Args:
            dt: Integration timestep.
        """
        if not dt > 0:
            raise ConfigurationError(f"time step must be positive, got {dt}")
        self._dt = float(dt)
        self._phase = IntegratorPhase.PREDICTOR

    @property
    def timestep(self) -> float:
        """Return the integration timestep."""
        return self._dt

    @property
    def phase(self) -> IntegratorPhase:
        """Return the phase the next call must belong to."""
        return self._phase

    def initialize(self, state: ParticleState) -> None:
        """
        Prepare scheme-specific history from the initial state.

        Called once, after the initial forces are known.
        """
        self._phase = IntegratorPhase.PREDICTOR

    def reset(self) -> None:
        """Reset integrator state for a new simulation."""
        self._phase = IntegratorPhase.PREDICTOR

    def predict(self, state: ParticleState) -> None:
        """
        Run the predictor phase (position update).

        Args:
            state: Particle state, advanced in place.
        """
        self._expect(IntegratorPhase.PREDICTOR)
        self._predict(state)
        self._phase = IntegratorPhase.CORRECTOR

    def correct(self, state: ParticleState) -> None:
        """
        Run the corrector phase using freshly computed accelerations.

        Args:
            state: Particle state, corrected in place.
        """
        self._expect(IntegratorPhase.CORRECTOR)
        self._correct(state)
        self._phase = IntegratorPhase.PREDICTOR

    def _expect(self, phase: IntegratorPhase) -> None:
        if self._phase is not phase:
            raise RuntimeError(
                f"{type(self).__name__}: {phase.value} called during "
                f"{self._phase.value} phase"
            )

    @abstractmethod
    def _predict(self, state: ParticleState) -> None: ...

    @abstractmethod
    def _correct(self, state: ParticleState) -> None: ...


class ThermostatModifier(ABC):
    """
    Post-step hook rescaling velocities toward a target temperature.
    """

    @abstractmethod
    def apply(self, state: ParticleState) -> None:
        """
        Modify velocities in place after a completed step.

        Args:
            state: Particle state.
        """
        ...

    @property
    @abstractmethod
    def target_temperature(self) -> float:
        """Return target temperature."""
        ...


class BarostatModifier(ABC):
    """
    Post-step hook rescaling the cell and positions toward a target pressure.
    """

    @abstractmethod
    def apply(
        self, state: ParticleState, cell: SimulationCell, pressure: float
    ) -> SimulationCell:
        """
        Rescale positions in place and return the (possibly new) cell.

        Returning a cell other than the one passed in makes the scheduler
        rebuild its cell list and neighbor list.

        Args:
            state: Particle state.
            cell: Current simulation cell.
            pressure: Instantaneous pressure of the completed step.

        Returns:
            Simulation cell to use from the next step on.
        """
        ...

    @property
    @abstractmethod
    def target_pressure(self) -> float:
        """Return target pressure."""
        ...
