"""Multi-step predictor-corrector integrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..exceptions import ConfigurationError
from .base import Integrator

if TYPE_CHECKING:
    from ..system import ParticleState

# order -> (predictor r, predictor v, corrector r, corrector v), all over 24.
# Weights apply to (a(t), a(t - dt), a(t - 2 dt)) in the predictor and to
# (a(t + dt), a(t), a(t - dt)) in the corrector.
COEFFICIENTS = {
    4: (
        np.array([19.0, -10.0, 3.0]),
        np.array([27.0, -22.0, 7.0]),
        np.array([3.0, 10.0, -1.0]),
        np.array([7.0, 6.0, -1.0]),
    ),
}
COEFFICIENT_DIVISOR = 24.0


class PredictorCorrectorIntegrator(Integrator):
    """
    Fixed-order Gear-style predictor-corrector for second-order equations.

    Positions are extrapolated from the current velocity and the last three
    accelerations; after the force evaluation the predicted state is
    replaced by a corrected one blending in the new acceleration. The two
    previous accelerations live in a two-slot ring buffer owned by the
    integrator.

    Algorithm (w_r = dt^2 / 24, w_v = dt / 24):
        predict:  r' = r + dt v + w_r (19 a - 10 a1 + 3 a2)
                  v' = (r' - r) / dt + w_v (27 a - 22 a1 + 7 a2)
        correct:  r' = r + dt v + w_r (3 a' + 10 a - a1)
                  v' = (r' - r) / dt + w_v (7 a' + 6 a - a1)

    where a1, a2 are accelerations one and two steps back and a' is the
    freshly evaluated acceleration.

    Attributes:
        order: Order of the scheme.
    """

    def __init__(self, dt: float, order: int = 4) -> None:
        """
        Initialize predictor-corrector integrator.

        Args:
            dt: Integration timestep.
            order: Scheme order; only 4 is available.
        """
        super().__init__(dt)
        if order not in COEFFICIENTS:
            raise ConfigurationError(
                f"predictor-corrector order {order} not supported; "
                f"available: {sorted(COEFFICIENTS)}"
            )
        self.order = order
        self._pr, self._pv, self._cr, self._cv = COEFFICIENTS[order]

        self._history: NDArray[np.floating] | None = None
        self._head = 0
        self._r_old: NDArray[np.floating] | None = None
        self._v_old: NDArray[np.floating] | None = None

    def initialize(self, state: ParticleState) -> None:
        """Seed the acceleration history with the initial accelerations."""
        super().initialize(state)
        self._history = np.stack([state.accelerations.copy()] * 2)
        self._head = 0
        self._r_old = None
        self._v_old = None

    def reset(self) -> None:
        """Drop the acceleration history."""
        super().reset()
        self._history = None
        self._r_old = None
        self._v_old = None

    @property
    def previous_accelerations(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Return (a(t - dt), a(t - 2 dt)) as seen by the next predictor."""
        if self._history is None:
            raise RuntimeError("integrator has not been initialized")
        return self._history[self._head], self._history[1 - self._head]

    def _blend(
        self,
        weights: NDArray[np.floating],
        a0: NDArray[np.floating],
        a1: NDArray[np.floating],
        a2: NDArray[np.floating],
    ) -> NDArray[np.floating]:
        return weights[0] * a0 + weights[1] * a1 + weights[2] * a2

    def _predict(self, state: ParticleState) -> None:
        if self._history is None or self._history.shape[1:] != state.accelerations.shape:
            self.initialize(state)

        dt = self._dt
        w_r = dt * dt / COEFFICIENT_DIVISOR
        w_v = dt / COEFFICIENT_DIVISOR
        a0 = state.accelerations
        a1, a2 = self.previous_accelerations

        self._r_old = state.positions.copy()
        self._v_old = state.velocities.copy()

        state.positions += dt * state.velocities + w_r * self._blend(self._pr, a0, a1, a2)
        state.velocities[...] = (state.positions - self._r_old) / dt + w_v * self._blend(
            self._pv, a0, a1, a2
        )

        # Overwrite the oldest slot: a(t) becomes a1, old a1 becomes a2
        self._history[1 - self._head] = a0
        self._head = 1 - self._head

    def _correct(self, state: ParticleState) -> None:
        dt = self._dt
        w_r = dt * dt / COEFFICIENT_DIVISOR
        w_v = dt / COEFFICIENT_DIVISOR
        a_new = state.accelerations
        a0, a1 = self.previous_accelerations

        state.positions[...] = (
            self._r_old + dt * self._v_old + w_r * self._blend(self._cr, a_new, a0, a1)
        )
        state.velocities[...] = (state.positions - self._r_old) / dt + w_v * self._blend(
            self._cv, a_new, a0, a1
        )
        self._r_old = None
        self._v_old = None
