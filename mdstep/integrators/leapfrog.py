"""Leapfrog integrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import Integrator

if TYPE_CHECKING:
    from ..system import ParticleState


class LeapfrogIntegrator(Integrator):
    """
    Leapfrog integrator in kick-drift-kick form.

    Algorithm:
        predict:  v(t + dt/2) = v(t) + 0.5 * dt * a(t)
                  r(t + dt)   = r(t) + dt * v(t + dt/2)
        correct:  v(t + dt)   = v(t + dt/2) + 0.5 * dt * a(t + dt)

    Symplectic and time-reversible; needs no derivative history, only the
    acceleration left in the state by the previous force evaluation.
    """

    def _predict(self, state: ParticleState) -> None:
        dt = self._dt
        state.velocities += 0.5 * dt * state.accelerations
        state.positions += dt * state.velocities

    def _correct(self, state: ParticleState) -> None:
        state.velocities += 0.5 * self._dt * state.accelerations
