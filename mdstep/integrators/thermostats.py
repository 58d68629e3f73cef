"""Velocity-rescaling thermostat hook."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from .base import ThermostatModifier

if TYPE_CHECKING:
    from ..system import ParticleState

logger = logging.getLogger(__name__)


class VelocityRescaleThermostat(ThermostatModifier):
    """
    Simple velocity rescaling thermostat.

    On every step that is a multiple of `interval`, rescales all velocities
    so the instantaneous temperature equals the target exactly. Gives the right
    mean kinetic energy but not a canonical velocity distribution; meant
    for equilibration. Scaling is multiplicative, so a zero total momentum
    stays zero.
    """

    def __init__(self, temperature: float, interval: int = 1) -> None:
        """
        Initialize velocity rescaling thermostat.

        Args:
            temperature: Target temperature in reduced units.
            interval: Apply the rescaling every this many steps.
        """
        if temperature < 0:
            raise ValueError(f"temperature must be >= 0, got {temperature}")
        if interval < 1:
            raise ValueError(f"interval must be >= 1, got {interval}")
        self._temperature = temperature
        self.interval = interval

    @property
    def target_temperature(self) -> float:
        return self._temperature

    @target_temperature.setter
    def target_temperature(self, value: float) -> None:
        self._temperature = value

    def apply(self, state: ParticleState) -> None:
        """Rescale velocities in place on steps that are a multiple of the interval."""
        if state.step % self.interval:
            return

        current_temp = state.temperature
        if current_temp < 1e-12:
            # Can't rescale from zero temperature
            return

        scale = np.sqrt(self._temperature / current_temp)
        state.velocities *= scale
        logger.debug("velocities rescaled by %.6f (T %.4f)", scale, current_temp)
