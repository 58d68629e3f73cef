"""Step scheduler: one atomic time step at a time."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import numpy as np

from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..forcefields import ForceEvaluator, ForceResult
    from ..integrators import BarostatModifier, Integrator, ThermostatModifier
    from ..neighborlists import CellList, NeighborList
    from ..system import FrozenParticleState, ParticleState, SimulationCell

logger = logging.getLogger(__name__)


class StepScheduler:
    """
    Drives the simulation loop.

    Owns the particle array for the whole run and threads it through the
    components on every step:

    1. On a check step, rebuild the cell list and neighbor list if the
       neighbor list reports itself stale.
    2. Integrator predictor phase, then boundary conditions. The position
       change is added to the displacement accumulators and staleness is
       checked once more, so the list is valid where forces are evaluated.
    3. Force evaluation.
    4. Integrator corrector phase.
    5. Boundary conditions.
    6. Add the corrector's position change to the displacement accumulators.

    A step runs on a private copy of the particle array that replaces the
    committed one only after the step has completed, so readers never see
    a half-updated state.

    Example usage:
        scheduler = StepScheduler(
            state=initial_state,
            cell=SimulationCell.cubic(10.0),
            integrator=LeapfrogIntegrator(dt=0.005),
            evaluator=ForceEvaluator(LennardJones(), cutoff=2.5),
            cell_list=CellList(cutoff=2.5, skin=0.4),
            neighbor_list=NeighborList(cutoff=2.5, skin=0.4),
        )
        scheduler.run(1000)

    Attributes:
        rebuild_check_interval: Staleness is checked every this many steps.
    """

    def __init__(
        self,
        state: ParticleState,
        cell: SimulationCell,
        integrator: Integrator,
        evaluator: ForceEvaluator,
        cell_list: CellList,
        neighbor_list: NeighborList,
        rebuild_check_interval: int = 1,
        thermostat: ThermostatModifier | None = None,
        barostat: BarostatModifier | None = None,
    ) -> None:
        """
        Initialize scheduler, build the lists and compute initial forces.

        Args:
            state: Initial particle state (copied).
            cell: Simulation cell.
            integrator: Time integrator.
            evaluator: Force evaluator (serial or threaded).
            cell_list: Cell list.
            neighbor_list: Neighbor list.
            rebuild_check_interval: Check staleness every this many steps.
            thermostat: Optional post-step thermostat hook.
            barostat: Optional post-step barostat hook.

        Raises:
            ConfigurationError: On inconsistent components or a cell too
                small for cutoff + skin.
        """
        if state.dim != cell.dim:
            raise ConfigurationError(
                f"{state.dim}D particles do not fit a {cell.dim}D cell"
            )
        if neighbor_list.cutoff < evaluator.cutoff:
            raise ConfigurationError(
                f"neighbor list cutoff {neighbor_list.cutoff} is below the "
                f"force cutoff {evaluator.cutoff}"
            )
        if cell_list.list_cutoff < neighbor_list.list_cutoff:
            raise ConfigurationError(
                f"cell list range {cell_list.list_cutoff} is below the neighbor "
                f"list range {neighbor_list.list_cutoff}"
            )
        if rebuild_check_interval < 1:
            raise ConfigurationError(
                f"rebuild check interval must be >= 1, got {rebuild_check_interval}"
            )

        self._state = state.copy()
        self._cell = cell
        self._integrator = integrator
        self._evaluator = evaluator
        self._cell_list = cell_list
        self._neighbor_list = neighbor_list
        self.rebuild_check_interval = rebuild_check_interval
        self._thermostat = thermostat
        self._barostat = barostat

        # Tracking
        self._running = False
        self._total_steps = 0
        self._wall_time = 0.0
        self._force_rebuild = False

        self._cell.apply_boundary(self._state)
        self._rebuild_lists(self._state)
        self._last_result = self._evaluator.evaluate(
            self._state, self._neighbor_list, self._cell
        )
        self._integrator.initialize(self._state)

    @property
    def state(self) -> FrozenParticleState:
        """Return a read-only snapshot of the last committed state."""
        return self._state.freeze()

    @property
    def cell(self) -> SimulationCell:
        """Return the current simulation cell."""
        return self._cell

    @property
    def integrator(self) -> Integrator:
        """Return integrator."""
        return self._integrator

    @property
    def evaluator(self) -> ForceEvaluator:
        """Return force evaluator."""
        return self._evaluator

    @property
    def neighbor_list(self) -> NeighborList:
        """Return neighbor list."""
        return self._neighbor_list

    @property
    def cell_list(self) -> CellList:
        """Return cell list."""
        return self._cell_list

    @property
    def last_result(self) -> ForceResult:
        """Return the force totals of the last completed evaluation."""
        return self._last_result

    @property
    def potential_energy(self) -> float:
        """Return last computed potential energy."""
        return self._last_result.potential_energy

    @property
    def virial(self) -> float:
        """Return last computed virial sum."""
        return self._last_result.virial

    @property
    def kinetic_energy(self) -> float:
        """Return current kinetic energy."""
        return self._state.kinetic_energy

    @property
    def total_energy(self) -> float:
        """Return total energy."""
        return self.kinetic_energy + self.potential_energy

    @property
    def temperature(self) -> float:
        """Return current temperature."""
        return self._state.temperature

    @property
    def pressure(self) -> float:
        """Return instantaneous pressure, (2 KE + virial) / (D V)."""
        return (2.0 * self.kinetic_energy + self.virial) / (
            self._cell.dim * self._cell.volume
        )

    @property
    def n_rebuilds(self) -> int:
        """Return number of neighbor-list rebuilds so far."""
        return self._neighbor_list.n_rebuilds

    @property
    def performance(self) -> dict[str, float]:
        """Return performance statistics."""
        if self._wall_time == 0:
            return {"steps_per_second": 0.0}

        return {
            "steps_per_second": self._total_steps / self._wall_time,
            "wall_time": self._wall_time,
            "total_steps": self._total_steps,
            "rebuilds": self.n_rebuilds,
        }

    def _rebuild_lists(self, state: ParticleState) -> None:
        """Rebuild the cell list, then the neighbor list, from state."""
        self._cell_list.build(state.positions, self._cell)
        self._neighbor_list.rebuild(state, self._cell_list, self._cell)
        self._force_rebuild = False

    def _is_check_step(self, state: ParticleState) -> bool:
        if self._neighbor_list.skin <= 0:
            return True
        return state.step % self.rebuild_check_interval == 0

    def _accumulate_displacement(
        self, state: ParticleState, previous: np.ndarray
    ) -> None:
        state.displacements += self._cell.minimum_image(previous, state.positions)

    def step(self) -> ForceResult:
        """
        Perform a single atomic time step.

        Returns:
            Force totals of this step.

        Raises:
            NumericalInstability: If a pair collapsed during evaluation.
            ThreadPoolError: If a force worker failed.
        """
        work = self._state.copy()
        try:
            result = self._advance(work)
        except Exception:
            logger.error("step %d aborted; state left at last completed step", work.step)
            self._force_rebuild = True
            self._integrator.initialize(self._state)
            raise

        # Commit
        self._state = work
        self._last_result = result
        return result

    def _advance(self, work: ParticleState) -> ForceResult:
        check = self._is_check_step(work)

        # 1. Neighbor list maintenance. Without skin a list is only valid at
        # the positions it was built from, so that rebuild waits for step 2.
        has_skin = self._neighbor_list.skin > 0
        if self._force_rebuild or (
            check and has_skin and self._neighbor_list.should_rebuild(work)
        ):
            self._rebuild_lists(work)

        # 2. Predictor + boundary conditions
        previous = work.positions.copy()
        self._integrator.predict(work)
        self._cell.apply_boundary(work)
        self._accumulate_displacement(work, previous)
        if check and self._neighbor_list.should_rebuild(work):
            self._rebuild_lists(work)

        # 3. Forces
        result = self._evaluator.evaluate(work, self._neighbor_list, self._cell)

        # 4. Corrector, 5. boundary conditions, 6. displacement bookkeeping
        previous = work.positions.copy()
        self._integrator.correct(work)
        self._cell.apply_boundary(work)
        self._accumulate_displacement(work, previous)

        work.time += self._integrator.timestep
        work.step += 1

        # Post-step hooks
        if self._thermostat is not None:
            self._thermostat.apply(work)
        if self._barostat is not None:
            pressure = (2.0 * work.kinetic_energy + result.virial) / (
                self._cell.dim * self._cell.volume
            )
            new_cell = self._barostat.apply(work, self._cell, pressure)
            if new_cell is not self._cell:
                self._cell = new_cell
                self._force_rebuild = True

        logger.debug(
            "step %d: U=%.6g W=%.6g pairs=%d",
            work.step,
            result.potential_energy,
            result.virial,
            self._neighbor_list.n_pairs,
        )
        return result

    def run(
        self,
        n_steps: int,
        callback: Callable[[StepScheduler], bool] | None = None,
    ) -> FrozenParticleState:
        """
        Run simulation for specified number of steps.

        Args:
            n_steps: Number of steps to run.
            callback: Optional callback called after each step.
                     Return True to stop simulation early.

        Returns:
            Snapshot of the final state.
        """
        self._running = True
        start_time = time.perf_counter()
        rebuilds_before = self.n_rebuilds
        logger.info(
            "running %d steps on %d particles", n_steps, self._state.n_particles
        )

        try:
            for _ in range(n_steps):
                if not self._running:
                    break

                self.step()
                self._total_steps += 1

                if callback is not None and callback(self):
                    break
        finally:
            self._wall_time += time.perf_counter() - start_time
            self._running = False

        logger.info(
            "finished at step %d: E=%.6g, %d neighbor-list rebuilds",
            self._state.step,
            self.total_energy,
            self.n_rebuilds - rebuilds_before,
        )
        return self.state

    def stop(self) -> None:
        """Signal simulation to stop."""
        self._running = False
